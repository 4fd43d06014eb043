from django.urls import path, include

urlpatterns = [
    path('', include('escrow_api.urls')),  # Include the escrow_api app's URLs
]
