import logging
import time

from asgiref.sync import async_to_sync
from django.utils.decorators import method_decorator
from django.views import View
from django.views.decorators.csrf import csrf_exempt

from .live_balance import resolve_live_balance
from ..constants.constants import ENTERING_FUNCTION_LOG, LEAVING_FUNCTION_LOG
from ..errors.error_handling import handle_error_new, EscrowViewerException
from ..escrows.escrow_mapper import extract_value
from ..escrows.escrows_util import FetchGenerationTracker, load_escrow_storage, get_live_balance_response
from ..network.network_config import resolve_network
from ..serializers import FetchRequestSerializer, validate_request_params
from ..utilities.utilities import total_execution_time_in_millis, extract_request_data, get_request_param, \
    validate_contract_id

logger = logging.getLogger('escrow_app')


@method_decorator(csrf_exempt, name="dispatch")
class GetEscrowLiveBalance(View):
    def post(self, request, *args, **kwargs):
        return self.get_escrow_live_balance(request)

    def get(self, request, *args, **kwargs):
        return self.get_escrow_live_balance(request)

    def get_escrow_live_balance(self, request):
        start_time = time.time()
        function_name = 'get_escrow_live_balance'
        logger.info(ENTERING_FUNCTION_LOG.format(function_name))

        try:
            data = extract_request_data(request)
            contract_id = validate_contract_id(get_request_param(data, 'contract_id'))
            params = validate_request_params(FetchRequestSerializer, data)
            network_config = resolve_network(request, data)

            tracker = FetchGenerationTracker(request, 'balance', contract_id)
            generation = tracker.register(params.get('request_seq'))

            storage = load_escrow_storage(contract_id, network_config)
            live_balance = async_to_sync(resolve_live_balance)(contract_id, storage, network_config)
            stored_balance = extract_value(storage, 'balance', False)

            tracker.ensure_current(generation)
            return get_live_balance_response(live_balance, stored_balance, contract_id, network_config)

        except EscrowViewerException as e:
            return handle_error_new(e, status_code=e.status_code, function_name=function_name)
        except Exception as e:
            # Handle error message
            return handle_error_new(e, status_code=500, function_name=function_name)
        finally:
            logger.info(LEAVING_FUNCTION_LOG.format(function_name, total_execution_time_in_millis(start_time)))
