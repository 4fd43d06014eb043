import logging
from dataclasses import dataclass, asdict

from django.conf import settings

from ..constants.constants import SUPPORTED_NETWORKS, TESTNET_NETWORK_PASSPHRASE, MAINNET_NETWORK_PASSPHRASE, \
    INVALID_NETWORK
from ..errors.error_handling import InvalidRequestError

logger = logging.getLogger('escrow_app')

NETWORK_SESSION_KEY = 'escrow_viewer_network'

EXPLORER_URLS = {
    'testnet': "https://stellar.expert/explorer/testnet",
    'mainnet': "https://stellar.expert/explorer/public",
}


@dataclass(frozen=True)
class NetworkConfig:
    network: str
    name: str
    rpc_url: str
    horizon_url: str
    network_passphrase: str
    explorer_url: str = None
    rpc_timeout: float = None

    def to_dict(self):
        data = asdict(self)
        data.pop('rpc_timeout')
        return data


def get_network_configs():
    """Build the table of supported networks from the Django settings."""
    timeout = getattr(settings, 'SOROBAN_RPC_TIMEOUT', None)
    return {
        'testnet': NetworkConfig(
            network='testnet',
            name='Testnet',
            rpc_url=settings.SOROBAN_TESTNET_RPC_URL,
            horizon_url=settings.STELLAR_TESTNET_HORIZON_URL,
            network_passphrase=TESTNET_NETWORK_PASSPHRASE,
            explorer_url=explorer_root('testnet'),
            rpc_timeout=timeout,
        ),
        'mainnet': NetworkConfig(
            network='mainnet',
            name='Mainnet',
            rpc_url=settings.SOROBAN_MAINNET_RPC_URL,
            horizon_url=settings.STELLAR_MAINNET_HORIZON_URL,
            network_passphrase=MAINNET_NETWORK_PASSPHRASE,
            explorer_url=explorer_root('mainnet'),
            rpc_timeout=timeout,
        ),
    }


def normalize_network(network):
    if not isinstance(network, str) or network.strip().lower() not in SUPPORTED_NETWORKS:
        raise InvalidRequestError(INVALID_NETWORK.format(network))
    return network.strip().lower()


def get_network_config(network):
    return get_network_configs()[normalize_network(network)]


def get_default_network():
    default = getattr(settings, 'ESCROW_DEFAULT_NETWORK', 'testnet')
    if default not in SUPPORTED_NETWORKS:
        logger.warning(f"Unsupported ESCROW_DEFAULT_NETWORK {default}, falling back to testnet")
        return 'testnet'
    return default


def resolve_network(request, data):
    """
    Pick the network for this request.

    An explicit ``network`` parameter wins, then the network stored in the
    session, then ESCROW_DEFAULT_NETWORK. An explicit choice is remembered in
    the session so later requests reuse it.
    """
    requested = data.get('network')
    if requested:
        network = normalize_network(requested)
        remember_network(request, network)
        return get_network_config(network)

    session = getattr(request, 'session', None)
    stored = session.get(NETWORK_SESSION_KEY) if session is not None else None
    if stored in SUPPORTED_NETWORKS:
        return get_network_config(stored)

    return get_network_config(get_default_network())


def remember_network(request, network):
    session = getattr(request, 'session', None)
    if session is not None and session.get(NETWORK_SESSION_KEY) != network:
        session[NETWORK_SESSION_KEY] = network
        logger.info(f"Network selection stored in session: {network}")


def explorer_root(network):
    base = (getattr(settings, 'ESCROW_EXPLORER_BASE_URL', '') or '').rstrip('/')
    if base:
        return base
    return EXPLORER_URLS.get(network, EXPLORER_URLS['testnet'])


def contract_explorer_url(contract_id, network):
    return f"{explorer_root(network)}/contract/{contract_id}"
