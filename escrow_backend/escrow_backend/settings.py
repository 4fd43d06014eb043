from pathlib import Path
import environ
import os

# Build paths inside the project like this: BASE_DIR / 'subdir'.
BASE_DIR = Path(__file__).resolve().parent.parent

# Initialize environment variables
env = environ.Env()

# The .env file is optional. Every value below has a default.
env_path = os.path.join(BASE_DIR, ".env")
if os.path.exists(env_path):
    env.read_env(env_path)

# SECURITY WARNING: keep the secret key used in production secret!
SECRET_KEY = env("DJANGO_SECRET_KEY", default='django-insecure-escrow-viewer-local-development-key')

# SECURITY WARNING: don't run with debug turned on in production!
DEBUG = env.bool("DJANGO_DEBUG", default=True)

ALLOWED_HOSTS = env.list("DJANGO_ALLOWED_HOSTS", default=["localhost", "127.0.0.1", "testserver"])

# Network selection
ESCROW_DEFAULT_NETWORK = env("ESCROW_DEFAULT_NETWORK", default="testnet")  # testnet or mainnet

SOROBAN_TESTNET_RPC_URL = env("SOROBAN_TESTNET_RPC_URL", default="https://soroban-testnet.stellar.org")
SOROBAN_MAINNET_RPC_URL = env("SOROBAN_MAINNET_RPC_URL", default="https://stellar.api.onfinality.io/public")
STELLAR_TESTNET_HORIZON_URL = env("STELLAR_TESTNET_HORIZON_URL", default="https://horizon-testnet.stellar.org")
STELLAR_MAINNET_HORIZON_URL = env("STELLAR_MAINNET_HORIZON_URL", default="https://horizon.stellar.org")

# Unset means the transport default (no timeout)
SOROBAN_RPC_TIMEOUT = env.float("SOROBAN_RPC_TIMEOUT", default=None)

# Overrides the stellar.expert explorer links when set
ESCROW_EXPLORER_BASE_URL = env("ESCROW_EXPLORER_BASE_URL", default="")

HISTORY_PAGE_SIZE = env.int("HISTORY_PAGE_SIZE", default=50)

# Application definition
INSTALLED_APPS = [
    'django.contrib.contenttypes',
    'django.contrib.sessions',
    'django.contrib.staticfiles',
    'rest_framework',
    'corsheaders',
    'escrow_api',
]

MIDDLEWARE = [
    'corsheaders.middleware.CorsMiddleware',
    'django.middleware.security.SecurityMiddleware',
    'django.contrib.sessions.middleware.SessionMiddleware',
    'django.middleware.common.CommonMiddleware',
    'django.middleware.csrf.CsrfViewMiddleware',
    'django.middleware.clickjacking.XFrameOptionsMiddleware',
]

CORS_ALLOWED_ORIGINS = env.list("CORS_ALLOWED_ORIGINS", default=["http://localhost:3000"])
CORS_ALLOW_CREDENTIALS = True

ROOT_URLCONF = 'escrow_backend.urls'

TEMPLATES = [
    {
        'BACKEND': 'django.template.backends.django.DjangoTemplates',
        'DIRS': [],
        'APP_DIRS': True,
        'OPTIONS': {
            'context_processors': [
                'django.template.context_processors.debug',
                'django.template.context_processors.request',
            ],
        },
    },
]

WSGI_APPLICATION = 'escrow_backend.wsgi.application'

# Nothing is persisted, so no database is configured
DATABASES = {}

# The selected network lives in the session cookie, no database required
SESSION_ENGINE = 'django.contrib.sessions.backends.signed_cookies'

CACHES = {
    'default': {
        'BACKEND': 'django.core.cache.backends.locmem.LocMemCache',
        'LOCATION': 'escrow-viewer',
    }
}

REST_FRAMEWORK = {
    'UNAUTHENTICATED_USER': None,
}

# Internationalization
# https://docs.djangoproject.com/en/5.1/topics/i18n/
LANGUAGE_CODE = 'en-us'
TIME_ZONE = 'UTC'
USE_I18N = True
USE_TZ = True

# Static files (CSS, JavaScript, Images)
STATIC_URL = 'static/'

DEFAULT_AUTO_FIELD = 'django.db.models.BigAutoField'

# Logging
LOGGING = {
    'version': 1,
    'disable_existing_loggers': False,
    'formatters': {
        'verbose': {
            'format': '{levelname} {asctime} [{module} - {funcName}:{lineno}] {message}',
            'style': '{',
        },
        'simple': {
            'format': '{levelname} {message}',
            'style': '{',
        },
    },
    'handlers': {
        'file': {
            'level': 'DEBUG',  # Log all messages (DEBUG and higher)
            'class': 'logging.FileHandler',
            'filename': os.path.join(BASE_DIR, 'debug.log'),
            'formatter': 'verbose',
            'delay': True,
        },
        'console': {
            'level': 'INFO',
            'class': 'logging.StreamHandler',
            'formatter': 'simple',
        },
    },
    'loggers': {
        'django': {
            'handlers': ['file'],
            'level': 'ERROR',
            'propagate': True,
        },
        'escrow_app': {
            'handlers': ['file', 'console'],
            'level': env("ESCROW_LOG_LEVEL", default="DEBUG"),
        },
    },
}
