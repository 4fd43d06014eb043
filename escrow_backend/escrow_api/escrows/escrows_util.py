import logging
import threading
import uuid

from django.core.cache import cache
from django.http import JsonResponse

from ..constants.constants import FETCH_GENERATION_CACHE_TIMEOUT, ROLE_MAPPING, ROLE_PERMISSIONS, ESCROW_NOT_FOUND
from ..errors.error_handling import StaleFetchError, EscrowNotFoundError
from ..ledger.ledger_util import fetch_escrow_storage
from ..network.network_config import contract_explorer_url

logger = logging.getLogger('escrow_app')

VIEWER_SESSION_KEY = 'escrow_viewer_id'

# Guards the read-compare-write of client sequences. The generation cache is
# LocMemCache, which is private to this process.
_register_lock = threading.Lock()


def get_viewer_id(request):
    session = getattr(request, 'session', None)
    if session is None:
        return 'anonymous'
    viewer_id = session.get(VIEWER_SESSION_KEY)
    if not viewer_id:
        viewer_id = uuid.uuid4().hex
        session[VIEWER_SESSION_KEY] = viewer_id
    return viewer_id


class FetchGenerationTracker:
    """
    Tracks the newest fetch per (viewer, data kind, contract).

    Every fetch registers a generation before it starts. A fetch whose
    generation has been overtaken by the time it completes is stale and its
    result must be discarded. Clients may send their own monotonically
    increasing ``request_seq``; without one the server counter is used.
    """

    def __init__(self, request, kind, contract_id):
        self.cache_key = f"escrow_fetch_generation:{get_viewer_id(request)}:{kind}:{contract_id}"

    def register(self, request_seq=None):
        if request_seq is None:
            cache.add(self.cache_key, 0, FETCH_GENERATION_CACHE_TIMEOUT)
            try:
                generation = cache.incr(self.cache_key)
            except ValueError:
                # Expired between add and incr
                cache.set(self.cache_key, 1, FETCH_GENERATION_CACHE_TIMEOUT)
                generation = 1
        else:
            generation = int(request_seq)
            self._raise_to(generation)

        logger.debug(f"Registered fetch generation {generation} for {self.cache_key}")
        return generation

    def _raise_to(self, generation):
        # The stored generation only ever moves forward
        with _register_lock:
            if generation > cache.get(self.cache_key, 0):
                cache.set(self.cache_key, generation, FETCH_GENERATION_CACHE_TIMEOUT)

    def is_current(self, generation):
        return cache.get(self.cache_key, generation) <= generation

    def ensure_current(self, generation):
        if not self.is_current(generation):
            logger.info(f"Discarding superseded fetch generation {generation} for {self.cache_key}")
            raise StaleFetchError()


def load_escrow_storage(contract_id, network_config):
    """Fetch the escrow map, raising EscrowNotFoundError when the contract has no entry on this network."""
    storage = fetch_escrow_storage(contract_id, network_config)
    if storage is None:
        raise EscrowNotFoundError(ESCROW_NOT_FOUND.format(network_config.name))
    return storage


def role_labels(roles):
    return {key: ROLE_MAPPING.get(key, key.replace('_', ' ').title()) for key in roles}


def role_descriptions(roles):
    labels = role_labels(roles)
    return {key: ROLE_PERMISSIONS.get(label) for key, label in labels.items()}


def get_escrow_data_response(organized, contract_id, network_config):
    return JsonResponse({
        'status': 'success',
        'message': 'Successfully retrieved escrow data.',
        'contract_id': contract_id,
        'network': network_config.network,
        'explorer_url': contract_explorer_url(contract_id, network_config.network),
        'role_labels': role_labels(organized.roles),
        'role_descriptions': role_descriptions(organized.roles),
        'result': organized.to_dict(),
    })


def get_escrow_raw_storage_response(storage, contract_id, network_config):
    return JsonResponse({
        'status': 'success',
        'message': 'Successfully retrieved escrow storage.',
        'contract_id': contract_id,
        'network': network_config.network,
        'result': storage,
    })


def get_live_balance_response(live_balance, stored_balance, contract_id, network_config):
    return JsonResponse({
        'status': 'success',
        'message': 'Successfully retrieved live escrow balance.',
        'contract_id': contract_id,
        'network': network_config.network,
        'stored_balance': stored_balance,
        'result': live_balance.to_dict(),
    })
