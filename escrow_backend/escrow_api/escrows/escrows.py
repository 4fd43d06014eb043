import logging
import time

from django.utils.decorators import method_decorator
from django.views import View
from django.views.decorators.csrf import csrf_exempt

from .escrow_mapper import organize_escrow_data
from .escrows_util import FetchGenerationTracker, load_escrow_storage, get_escrow_data_response, \
    get_escrow_raw_storage_response
from .tagged_value import escrow_map_to_json
from ..constants.constants import ENTERING_FUNCTION_LOG, LEAVING_FUNCTION_LOG
from ..errors.error_handling import handle_error_new, EscrowViewerException
from ..network.network_config import resolve_network
from ..serializers import EscrowRequestSerializer, FetchRequestSerializer, validate_request_params
from ..utilities.utilities import total_execution_time_in_millis, extract_request_data, get_request_param, \
    validate_contract_id

logger = logging.getLogger('escrow_app')


@method_decorator(csrf_exempt, name="dispatch")
class GetEscrowData(View):
    def post(self, request, *args, **kwargs):
        return self.get_escrow_data(request)

    def get(self, request, *args, **kwargs):
        return self.get_escrow_data(request)

    def get_escrow_data(self, request):
        start_time = time.time()
        function_name = 'get_escrow_data'
        logger.info(ENTERING_FUNCTION_LOG.format(function_name))

        try:
            data = extract_request_data(request)
            contract_id = validate_contract_id(get_request_param(data, 'contract_id'))
            params = validate_request_params(EscrowRequestSerializer, data)
            network_config = resolve_network(request, data)

            tracker = FetchGenerationTracker(request, 'escrow', contract_id)
            generation = tracker.register(params.get('request_seq'))

            storage = load_escrow_storage(contract_id, network_config)
            organized = organize_escrow_data(storage, contract_id, params['is_mobile'])

            tracker.ensure_current(generation)
            return get_escrow_data_response(organized, contract_id, network_config)

        except EscrowViewerException as e:
            return handle_error_new(e, status_code=e.status_code, function_name=function_name)
        except Exception as e:
            # Handle error message
            return handle_error_new(e, status_code=500, function_name=function_name)
        finally:
            logger.info(LEAVING_FUNCTION_LOG.format(function_name, total_execution_time_in_millis(start_time)))


@method_decorator(csrf_exempt, name="dispatch")
class GetEscrowRawStorage(View):
    def post(self, request, *args, **kwargs):
        return self.get_escrow_raw_storage(request)

    def get(self, request, *args, **kwargs):
        return self.get_escrow_raw_storage(request)

    def get_escrow_raw_storage(self, request):
        start_time = time.time()
        function_name = 'get_escrow_raw_storage'
        logger.info(ENTERING_FUNCTION_LOG.format(function_name))

        try:
            data = extract_request_data(request)
            contract_id = validate_contract_id(get_request_param(data, 'contract_id'))
            params = validate_request_params(FetchRequestSerializer, data)
            network_config = resolve_network(request, data)

            tracker = FetchGenerationTracker(request, 'raw', contract_id)
            generation = tracker.register(params.get('request_seq'))

            storage = load_escrow_storage(contract_id, network_config)

            tracker.ensure_current(generation)
            return get_escrow_raw_storage_response(escrow_map_to_json(storage), contract_id, network_config)

        except EscrowViewerException as e:
            return handle_error_new(e, status_code=e.status_code, function_name=function_name)
        except Exception as e:
            # Handle error message
            return handle_error_new(e, status_code=500, function_name=function_name)
        finally:
            logger.info(LEAVING_FUNCTION_LOG.format(function_name, total_execution_time_in_millis(start_time)))
