import logging
import time

from django.conf import settings
from django.utils.decorators import method_decorator
from django.views import View
from django.views.decorators.csrf import csrf_exempt

from .transactions_util import fetch_transactions, fetch_transaction_details, get_transactions_response, \
    get_transaction_details_response
from ..constants.constants import ENTERING_FUNCTION_LOG, LEAVING_FUNCTION_LOG, TRANSACTION_NOT_FOUND
from ..errors.error_handling import handle_error_new, EscrowViewerException, error_response
from ..escrows.escrows_util import FetchGenerationTracker
from ..network.network_config import resolve_network
from ..serializers import HistoryRequestSerializer, validate_request_params
from ..utilities.utilities import total_execution_time_in_millis, extract_request_data, get_request_param, \
    validate_contract_id

logger = logging.getLogger('escrow_app')


@method_decorator(csrf_exempt, name="dispatch")
class GetEscrowTransactions(View):
    def post(self, request, *args, **kwargs):
        return self.get_escrow_transactions(request)

    def get(self, request, *args, **kwargs):
        return self.get_escrow_transactions(request)

    def get_escrow_transactions(self, request):
        start_time = time.time()
        function_name = 'get_escrow_transactions'
        logger.info(ENTERING_FUNCTION_LOG.format(function_name))

        try:
            data = extract_request_data(request)
            contract_id = validate_contract_id(get_request_param(data, 'contract_id'))
            params = validate_request_params(HistoryRequestSerializer, data)
            network_config = resolve_network(request, data)

            tracker = FetchGenerationTracker(request, 'transactions', contract_id)
            generation = tracker.register(params.get('request_seq'))

            page = fetch_transactions(
                contract_id,
                network_config,
                cursor=params.get('cursor') or None,
                limit=params.get('limit') or settings.HISTORY_PAGE_SIZE,
                start_ledger=params.get('start_ledger'),
            )

            tracker.ensure_current(generation)
            return get_transactions_response(page, contract_id, network_config)

        except EscrowViewerException as e:
            return handle_error_new(e, status_code=e.status_code, function_name=function_name)
        except Exception as e:
            # Handle error message
            return handle_error_new(e, status_code=500, function_name=function_name)
        finally:
            logger.info(LEAVING_FUNCTION_LOG.format(function_name, total_execution_time_in_millis(start_time)))


@method_decorator(csrf_exempt, name="dispatch")
class GetTransactionDetails(View):
    def post(self, request, *args, **kwargs):
        return self.get_transaction_details(request)

    def get(self, request, *args, **kwargs):
        return self.get_transaction_details(request)

    def get_transaction_details(self, request):
        start_time = time.time()
        function_name = 'get_transaction_details'
        logger.info(ENTERING_FUNCTION_LOG.format(function_name))

        try:
            data = extract_request_data(request)
            tx_hash = get_request_param(data, 'tx_hash')
            network_config = resolve_network(request, data)

            details = fetch_transaction_details(tx_hash, network_config)
            if details is None:
                return handle_error_new(ValueError(error_response(TRANSACTION_NOT_FOUND)), status_code=404,
                                        function_name=function_name)

            return get_transaction_details_response(details, network_config)

        except EscrowViewerException as e:
            return handle_error_new(e, status_code=e.status_code, function_name=function_name)
        except Exception as e:
            # Handle error message
            return handle_error_new(e, status_code=500, function_name=function_name)
        finally:
            logger.info(LEAVING_FUNCTION_LOG.format(function_name, total_execution_time_in_millis(start_time)))
