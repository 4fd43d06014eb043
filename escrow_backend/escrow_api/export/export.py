import logging
import time

from django.http import HttpResponse
from django.utils.decorators import method_decorator
from django.views import View
from django.views.decorators.csrf import csrf_exempt

from .pdf_export import generate_escrow_pdf, export_filename
from ..constants.constants import ENTERING_FUNCTION_LOG, LEAVING_FUNCTION_LOG
from ..errors.error_handling import handle_error_new, EscrowViewerException
from ..escrows.escrow_mapper import organize_escrow_data
from ..escrows.escrows_util import load_escrow_storage
from ..network.network_config import resolve_network
from ..utilities.utilities import total_execution_time_in_millis, extract_request_data, get_request_param, \
    validate_contract_id

logger = logging.getLogger('escrow_app')


@method_decorator(csrf_exempt, name="dispatch")
class ExportEscrowPdf(View):
    def post(self, request, *args, **kwargs):
        return self.export_escrow_pdf(request)

    def get(self, request, *args, **kwargs):
        return self.export_escrow_pdf(request)

    def export_escrow_pdf(self, request):
        start_time = time.time()
        function_name = 'export_escrow_pdf'
        logger.info(ENTERING_FUNCTION_LOG.format(function_name))

        try:
            data = extract_request_data(request)
            contract_id = validate_contract_id(get_request_param(data, 'contract_id'))
            network_config = resolve_network(request, data)

            storage = load_escrow_storage(contract_id, network_config)
            # Full addresses in the report
            organized = organize_escrow_data(storage, contract_id, False)
            pdf_bytes = generate_escrow_pdf(organized, network_config.network, contract_id)

            response = HttpResponse(pdf_bytes, content_type='application/pdf')
            response['Content-Disposition'] = \
                f'attachment; filename="{export_filename(contract_id, network_config.network)}"'
            return response

        except EscrowViewerException as e:
            return handle_error_new(e, status_code=e.status_code, function_name=function_name)
        except Exception as e:
            # Handle error message
            return handle_error_new(e, status_code=500, function_name=function_name)
        finally:
            logger.info(LEAVING_FUNCTION_LOG.format(function_name, total_execution_time_in_millis(start_time)))
