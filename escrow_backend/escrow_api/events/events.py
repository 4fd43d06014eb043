import logging
import time

from django.conf import settings
from django.utils.decorators import method_decorator
from django.views import View
from django.views.decorators.csrf import csrf_exempt

from .events_util import fetch_events, get_events_response
from ..constants.constants import ENTERING_FUNCTION_LOG, LEAVING_FUNCTION_LOG
from ..errors.error_handling import handle_error_new, EscrowViewerException
from ..escrows.escrows_util import FetchGenerationTracker
from ..network.network_config import resolve_network
from ..serializers import HistoryRequestSerializer, validate_request_params
from ..utilities.utilities import total_execution_time_in_millis, extract_request_data, get_request_param, \
    validate_contract_id

logger = logging.getLogger('escrow_app')


@method_decorator(csrf_exempt, name="dispatch")
class GetEscrowEvents(View):
    def post(self, request, *args, **kwargs):
        return self.get_escrow_events(request)

    def get(self, request, *args, **kwargs):
        return self.get_escrow_events(request)

    def get_escrow_events(self, request):
        start_time = time.time()
        function_name = 'get_escrow_events'
        logger.info(ENTERING_FUNCTION_LOG.format(function_name))

        try:
            data = extract_request_data(request)
            contract_id = validate_contract_id(get_request_param(data, 'contract_id'))
            params = validate_request_params(HistoryRequestSerializer, data)
            network_config = resolve_network(request, data)

            tracker = FetchGenerationTracker(request, 'events', contract_id)
            generation = tracker.register(params.get('request_seq'))

            page = fetch_events(
                contract_id,
                network_config,
                cursor=params.get('cursor') or None,
                limit=params.get('limit') or settings.HISTORY_PAGE_SIZE,
            )

            tracker.ensure_current(generation)
            return get_events_response(page, contract_id, network_config)

        except EscrowViewerException as e:
            return handle_error_new(e, status_code=e.status_code, function_name=function_name)
        except Exception as e:
            # Handle error message
            return handle_error_new(e, status_code=500, function_name=function_name)
        finally:
            logger.info(LEAVING_FUNCTION_LOG.format(function_name, total_execution_time_in_millis(start_time)))
