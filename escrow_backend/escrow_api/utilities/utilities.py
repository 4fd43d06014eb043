import json
import logging
import re
import time

from ..constants.constants import CONTRACT_ID_PATTERN, TRANSACTION_HASH_PATTERN, INVALID_CONTRACT_ID, \
    MISSING_CONTRACT_ID, INVALID_TRANSACTION_HASH
from ..errors.error_handling import InvalidContractIdError, InvalidRequestError

logger = logging.getLogger('escrow_app')

CONTRACT_ID_REGEX = re.compile(CONTRACT_ID_PATTERN)
TRANSACTION_HASH_REGEX = re.compile(TRANSACTION_HASH_PATTERN)


def total_execution_time_in_millis(start_time):
    end_time = time.time()  # Capture the end time
    return int((end_time - start_time) * 1000)  # Convert seconds to milliseconds


def is_valid_contract_id(contract_id) -> bool:
    """
    Check if the provided value is a Soroban contract strkey.

    A valid contract ID is 56 characters long, starts with 'C' and is made of
    the base32 alphabet (A-Z, 2-7).

    Args:
        contract_id (str): The contract ID to validate.

    Returns:
        bool: True if the contract ID is valid, False otherwise.
    """
    if not isinstance(contract_id, str):
        return False
    return bool(CONTRACT_ID_REGEX.match(contract_id))


def validate_contract_id(contract_id):
    """Return the trimmed contract ID or raise InvalidContractIdError."""
    if contract_id is None or (isinstance(contract_id, str) and not contract_id.strip()):
        raise InvalidContractIdError(MISSING_CONTRACT_ID)

    candidate = contract_id.strip() if isinstance(contract_id, str) else contract_id
    if not is_valid_contract_id(candidate):
        logger.error(f"Invalid contract ID: {contract_id}")
        raise InvalidContractIdError(INVALID_CONTRACT_ID.format(contract_id))
    return candidate


def is_valid_transaction_hash(transaction_hash) -> bool:
    """
    Check if the provided transaction hash is valid.

    A valid transaction hash is a 64-character string consisting of
    hexadecimal characters (0-9, A-F, or a-f).
    """
    if not isinstance(transaction_hash, str):
        return False
    return bool(TRANSACTION_HASH_REGEX.match(transaction_hash))


def validate_transaction_hash(transaction_hash):
    if not is_valid_transaction_hash(transaction_hash):
        raise InvalidRequestError(INVALID_TRANSACTION_HASH)
    return transaction_hash.lower()


def extract_request_data(request):
    """
    Collect request parameters from the query string and, when present, a JSON body.

    Body values win over query string values with the same name.

    Raises:
        InvalidRequestError: If the body is present but is not a JSON object.
    """
    data = {key: request.GET.get(key) for key in request.GET.keys()}

    if request.body:
        try:
            body = json.loads(request.body)
        except (ValueError, UnicodeDecodeError):
            raise InvalidRequestError("Request body is not valid JSON.")
        if not isinstance(body, dict):
            raise InvalidRequestError("Request body must be a JSON object.")
        data.update(body)

    return data


def get_request_param(data, key, default=None, convert_func=None):
    """
    Retrieves a parameter from the collected request data.

    Optionally applies a conversion function to the retrieved value before returning it.

    Examples:
        # Retrieve an integer parameter 'limit' from the request
        limit = get_request_param(data, 'limit', convert_func=int)

        # Retrieve a string parameter 'network' with a default value 'testnet'
        network = get_request_param(data, 'network', default='testnet')
    """
    value = data.get(key, default)
    if convert_func and value is not None:
        return convert_func(value)  # Apply conversion function if provided
    return value

