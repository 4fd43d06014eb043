import logging

from django.http import JsonResponse

from ..constants.constants import FAILURE, NETWORK_ERROR, MALFORMED_LEDGER_DATA, STALE_FETCH

logger = logging.getLogger('escrow_app')


class EscrowViewerException(Exception):
    """Base class for every error raised by the escrow viewer."""
    status_code = 500

    def __init__(self, message, *args):
        super().__init__(message, *args)
        self.message = message

    @property
    def user_message(self):
        return self.message


class InvalidContractIdError(EscrowViewerException):
    status_code = 400


class InvalidRequestError(EscrowViewerException):
    status_code = 400


class EscrowNotFoundError(EscrowViewerException):
    status_code = 404


class RpcError(EscrowViewerException):
    """Transport or protocol failure talking to the Soroban RPC node."""
    status_code = 502

    @property
    def user_message(self):
        return NETWORK_ERROR


class RpcTransportError(RpcError):
    pass


class RpcResponseError(RpcError):
    pass


class RpcProtocolError(RpcError):
    def __init__(self, code, message):
        super().__init__(f"RPC error {code}: {message}")
        self.code = code
        self.rpc_message = message


class MalformedLedgerDataError(EscrowViewerException):
    status_code = 502

    @property
    def user_message(self):
        return MALFORMED_LEDGER_DATA


class StaleFetchError(EscrowViewerException):
    status_code = 409

    def __init__(self, message=STALE_FETCH):
        super().__init__(message)


def error_response(message):
    return {"status": FAILURE, "message": message}


def handle_error_new(exception, status_code, function_name):
    exception_name = type(exception).__name__
    logger.error(f"Exception caught: {exception_name} - {exception}")

    if isinstance(exception, EscrowViewerException):
        status_code = exception.status_code
        error_data = error_response(exception.user_message)
    elif exception.args and isinstance(exception.args[0], dict):
        error_data = exception.args[0]
    else:
        error_data = error_response(str(exception))

    logger.error(f"Leaving: {function_name}")
    return JsonResponse(error_data, status=status_code)
