from django.apps import AppConfig
from django.conf import settings
import logging

logger = logging.getLogger('escrow_app')


class EscrowApiConfig(AppConfig):
    name = 'escrow_api'
    DEFAULT_NETWORK = None
    NETWORKS = None

    def ready(self):
        from .network.network_config import get_default_network, get_network_configs

        logger.info("----------------- App started ----------------- ")

        self.DEFAULT_NETWORK = get_default_network()
        self.NETWORKS = get_network_configs()

        logger.info(f"Default network: {self.DEFAULT_NETWORK}")
        for network, config in self.NETWORKS.items():
            logger.info(f"Using {network} RPC URL: {config.rpc_url}")
            logger.info(f"Using {network} HORIZON URL: {config.horizon_url}")
        logger.info(f"SOROBAN_RPC_TIMEOUT: {settings.SOROBAN_RPC_TIMEOUT}")
        logger.info(f"HISTORY_PAGE_SIZE: {settings.HISTORY_PAGE_SIZE}")
