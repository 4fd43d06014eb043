import logging
from dataclasses import dataclass, field, asdict
from typing import List, Optional

from django.http import JsonResponse

from ..constants.constants import DEFAULT_HISTORY_LIMIT, EVENTS_LOOKBACK_LEDGERS, RETENTION_ERROR_CODE, \
    NO_RECENT_TRANSACTIONS_NOTICE, TRANSACTION_RETENTION_NOTICE, TRANSACTION_HISTORY_UNAVAILABLE_NOTICE
from ..errors.error_handling import RpcProtocolError
from ..rpc.rpc_client import get_rpc_client
from ..utilities.utilities import validate_contract_id, validate_transaction_hash

logger = logging.getLogger('escrow_app')


@dataclass(frozen=True)
class TransactionPage:
    items: List[dict] = field(default_factory=list)
    cursor: Optional[str] = None
    has_more: bool = False
    latest_ledger: int = 0
    oldest_ledger: int = 0
    retention_notice: Optional[str] = None

    def to_dict(self):
        return asdict(self)


def is_retention_error(error) -> bool:
    if not isinstance(error, RpcProtocolError):
        return False
    return error.code == RETENTION_ERROR_CODE or "retention" in str(error.rpc_message).lower()


def find_key(node, key):
    """First value stored under ``key`` anywhere in a nested JSON structure."""
    if isinstance(node, dict):
        if key in node:
            return node[key]
        for value in node.values():
            found = find_key(value, key)
            if found is not None:
                return found
    elif isinstance(node, list):
        for item in node:
            found = find_key(item, key)
            if found is not None:
                return found
    return None


def map_transaction(transaction):
    return {
        'tx_hash': transaction.get('txHash') or transaction.get('id'),
        'ledger': transaction.get('ledger'),
        'created_at': transaction.get('createdAt'),
        'status': transaction.get('status'),
        'application_order': transaction.get('applicationOrder'),
    }


def fetch_transactions(contract_id, network_config, cursor=None, limit=DEFAULT_HISTORY_LIMIT, start_ledger=None,
                       client=None):
    """
    Fetch one page of transactions touching the contract.

    Fails soft: retention errors, network failures and empty results all come
    back as an empty page carrying a notice for the user.

    Raises:
        InvalidContractIdError: Before any network call, for a malformed ID.
    """
    contract_id = validate_contract_id(contract_id)
    client = client or get_rpc_client(network_config)

    try:
        if not cursor and not start_ledger:
            latest = client.get_latest_ledger()
            start_ledger = max(1, int(latest["sequence"]) - EVENTS_LOOKBACK_LEDGERS)

        result = client.get_transactions(
            start_ledger=start_ledger,
            cursor=cursor,
            limit=limit,
            filters=[{"type": "contract", "contractIds": [contract_id]}],
        )
    except RpcProtocolError as e:
        if is_retention_error(e):
            logger.warning(f"Transactions for {contract_id} are beyond retention: {e}")
            return TransactionPage(retention_notice=TRANSACTION_RETENTION_NOTICE)
        logger.error(f"Error fetching transactions for {contract_id}: {e}")
        return TransactionPage(retention_notice=TRANSACTION_HISTORY_UNAVAILABLE_NOTICE)
    except Exception as e:
        logger.error(f"Error fetching transactions for {contract_id}: {e}")
        return TransactionPage(retention_notice=TRANSACTION_HISTORY_UNAVAILABLE_NOTICE)

    if not isinstance(result, dict):
        logger.error(f"Unexpected getTransactions result for {contract_id}: {result}")
        return TransactionPage(retention_notice=TRANSACTION_HISTORY_UNAVAILABLE_NOTICE)

    items = [map_transaction(tx) for tx in result.get("transactions") or [] if isinstance(tx, dict)]
    next_cursor = result.get("cursor") or None

    logger.info(f"Fetched {len(items)} transactions for {contract_id}")
    return TransactionPage(
        items=items,
        cursor=next_cursor,
        has_more=bool(next_cursor),
        latest_ledger=result.get("latestLedger") or 0,
        oldest_ledger=result.get("oldestLedger") or 0,
        retention_notice=None if items else NO_RECENT_TRANSACTIONS_NOTICE,
    )


def fetch_transaction_details(tx_hash, network_config, client=None):
    """
    Fetch a single transaction with its envelope and result meta decoded as JSON.

    Returns:
        dict | None: The transaction details, or None when the node does not
        know the hash or the call fails.

    Raises:
        InvalidRequestError: For a hash that is not 64 hexadecimal characters.
    """
    tx_hash = validate_transaction_hash(tx_hash)
    client = client or get_rpc_client(network_config)

    try:
        transaction = client.get_transaction(tx_hash, xdr_format="json")
    except Exception as e:
        logger.error(f"Error fetching transaction details for {tx_hash}: {e}")
        return None

    if not isinstance(transaction, dict) or transaction.get("status") == "NOT_FOUND":
        logger.info(f"Transaction {tx_hash} not found on {network_config.network}")
        return None

    envelope = transaction.get("envelopeJson")
    meta = transaction.get("resultMetaJson")

    invoke = find_key(envelope, "invoke_contract")
    called_function = None
    contract_address = None
    args = None
    if isinstance(invoke, dict):
        called_function = invoke.get("function_name") or "invoke_contract"
        contract_address = invoke.get("contract_address")
        args = invoke.get("args") or []

    return {
        'tx_hash': transaction.get("txHash") or tx_hash,
        'ledger': transaction.get("ledger"),
        'created_at': transaction.get("createdAt"),
        'status': transaction.get("status"),
        'application_order': transaction.get("applicationOrder"),
        'called_function': called_function,
        'contract_address': contract_address,
        'args': args,
        'result': find_key(meta, "return_value"),
        'envelope': envelope,
        'meta': meta,
    }


def get_transactions_response(page, contract_id, network_config):
    return JsonResponse({
        'status': 'success',
        'message': 'Successfully retrieved escrow transactions.',
        'contract_id': contract_id,
        'network': network_config.network,
        'result': page.to_dict(),
    })


def get_transaction_details_response(details, network_config):
    return JsonResponse({
        'status': 'success',
        'message': 'Successfully retrieved transaction details.',
        'network': network_config.network,
        'result': details,
    })
