import logging
from dataclasses import dataclass, field, asdict
from typing import List, Optional

from django.http import JsonResponse

from ..constants.constants import DEFAULT_HISTORY_LIMIT, EVENTS_LOOKBACK_LEDGERS, NO_RECENT_EVENTS_NOTICE, \
    EVENT_RETENTION_NOTICE, EVENT_HISTORY_UNAVAILABLE_NOTICE
from ..errors.error_handling import RpcProtocolError
from ..rpc.rpc_client import get_rpc_client
from ..transactions.transactions_util import is_retention_error
from ..utilities.utilities import validate_contract_id

logger = logging.getLogger('escrow_app')


@dataclass(frozen=True)
class EventPage:
    items: List[dict] = field(default_factory=list)
    cursor: Optional[str] = None
    has_more: bool = False
    latest_ledger: int = 0
    retention_notice: Optional[str] = None

    def to_dict(self):
        return asdict(self)


def map_event(event):
    return {
        'id': event.get('id'),
        'type': event.get('type'),
        'ledger': event.get('ledger'),
        'ledger_closed_at': event.get('ledgerClosedAt'),
        'contract_id': event.get('contractId'),
        'tx_hash': event.get('txHash'),
        'topics': event.get('topic') or event.get('topics') or [],
        'value': event.get('value') or "",
        'in_successful_contract_call': event.get('inSuccessfulContractCall'),
    }


def fetch_events(contract_id, network_config, cursor=None, limit=DEFAULT_HISTORY_LIMIT, client=None):
    """
    Fetch one page of contract events, newest ledger first.

    Without a cursor the scan starts roughly seven days back from the latest
    ledger. Failures degrade to an empty page with a notice.

    Raises:
        InvalidContractIdError: Before any network call, for a malformed ID.
    """
    contract_id = validate_contract_id(contract_id)
    client = client or get_rpc_client(network_config)

    try:
        latest_ledger = int(client.get_latest_ledger()["sequence"])
        start_ledger = None if cursor else max(1, latest_ledger - EVENTS_LOOKBACK_LEDGERS)

        result = client.get_events(
            filters=[{"type": "contract", "contractIds": [contract_id]}],
            start_ledger=start_ledger,
            cursor=cursor,
            limit=limit,
        )
    except RpcProtocolError as e:
        if is_retention_error(e):
            logger.warning(f"Events for {contract_id} are beyond retention: {e}")
            return EventPage(retention_notice=EVENT_RETENTION_NOTICE)
        logger.error(f"Error fetching events for {contract_id}: {e}")
        return EventPage(retention_notice=EVENT_HISTORY_UNAVAILABLE_NOTICE)
    except Exception as e:
        logger.error(f"Error fetching events for {contract_id}: {e}")
        return EventPage(retention_notice=EVENT_HISTORY_UNAVAILABLE_NOTICE)

    if not isinstance(result, dict):
        logger.error(f"Unexpected getEvents result for {contract_id}: {result}")
        return EventPage(retention_notice=EVENT_HISTORY_UNAVAILABLE_NOTICE)

    items = [map_event(event) for event in result.get("events") or [] if isinstance(event, dict)]
    items.sort(key=lambda event: event['ledger'] if isinstance(event['ledger'], int) else 0, reverse=True)
    next_cursor = result.get("cursor") or None

    logger.info(f"Fetched {len(items)} events for {contract_id}")
    return EventPage(
        items=items,
        cursor=next_cursor,
        has_more=bool(next_cursor),
        latest_ledger=result.get("latestLedger") or latest_ledger,
        retention_notice=None if items else NO_RECENT_EVENTS_NOTICE,
    )


def get_events_response(page, contract_id, network_config):
    return JsonResponse({
        'status': 'success',
        'message': 'Successfully retrieved escrow events.',
        'contract_id': contract_id,
        'network': network_config.network,
        'result': page.to_dict(),
    })
