import logging
import time

from django.http import JsonResponse
from django.utils.decorators import method_decorator
from django.views import View
from django.views.decorators.csrf import csrf_exempt

from .network_config import resolve_network, get_network_configs
from ..constants.constants import ENTERING_FUNCTION_LOG, LEAVING_FUNCTION_LOG
from ..errors.error_handling import handle_error_new, EscrowViewerException
from ..serializers import NetworkSelectionSerializer, validate_request_params
from ..utilities.utilities import total_execution_time_in_millis, extract_request_data

logger = logging.getLogger('escrow_app')


def get_network_selection_response(network_config, message):
    return JsonResponse({
        'status': 'success',
        'message': message,
        'result': network_config.to_dict(),
        'available_networks': list(get_network_configs()),
    })


@method_decorator(csrf_exempt, name="dispatch")
class NetworkSelection(View):
    """Read (GET) or change (POST) the network remembered for this session."""

    def get(self, request, *args, **kwargs):
        start_time = time.time()
        function_name = 'get_network_selection'
        logger.info(ENTERING_FUNCTION_LOG.format(function_name))

        try:
            network_config = resolve_network(request, {})
            return get_network_selection_response(network_config, 'Successfully retrieved network selection.')
        except EscrowViewerException as e:
            return handle_error_new(e, status_code=e.status_code, function_name=function_name)
        except Exception as e:
            return handle_error_new(e, status_code=500, function_name=function_name)
        finally:
            logger.info(LEAVING_FUNCTION_LOG.format(function_name, total_execution_time_in_millis(start_time)))

    def post(self, request, *args, **kwargs):
        start_time = time.time()
        function_name = 'set_network_selection'
        logger.info(ENTERING_FUNCTION_LOG.format(function_name))

        try:
            data = extract_request_data(request)
            params = validate_request_params(NetworkSelectionSerializer, data)
            network_config = resolve_network(request, {'network': params['network']})
            return get_network_selection_response(network_config, 'Successfully updated network selection.')
        except EscrowViewerException as e:
            return handle_error_new(e, status_code=e.status_code, function_name=function_name)
        except Exception as e:
            return handle_error_new(e, status_code=500, function_name=function_name)
        finally:
            logger.info(LEAVING_FUNCTION_LOG.format(function_name, total_execution_time_in_millis(start_time)))
