import json
import logging

from stellar_sdk import Address
from stellar_sdk import xdr as stellar_xdr

from ..constants.constants import ESCROW_STORAGE_SYMBOL
from ..errors.error_handling import MalformedLedgerDataError
from ..escrows.tagged_value import parse_map_entries
from ..rpc.rpc_client import get_rpc_client

logger = logging.getLogger('escrow_app')


def build_contract_instance_key(contract_id: str) -> str:
    """Base64 XDR ledger key of the contract's persistent instance entry."""
    ledger_key = stellar_xdr.LedgerKey(
        type=stellar_xdr.LedgerEntryType.CONTRACT_DATA,
        contract_data=stellar_xdr.LedgerKeyContractData(
            contract=Address(contract_id).to_xdr_sc_address(),
            key=stellar_xdr.SCVal(type=stellar_xdr.SCValType.SCV_LEDGER_KEY_CONTRACT_INSTANCE),
            durability=stellar_xdr.ContractDataDurability.PERSISTENT,
        ),
    )
    return ledger_key.to_xdr()


def get_contract_instance_storage(entry):
    """Return the storage list of a getLedgerEntries entry rendered with xdrFormat=json."""
    data_json = entry.get("dataJson") if isinstance(entry, dict) else None
    if isinstance(data_json, str):
        try:
            data_json = json.loads(data_json)
        except ValueError:
            raise MalformedLedgerDataError("Ledger entry dataJson is not valid JSON")

    try:
        instance = data_json["contract_data"]["val"]["contract_instance"]
    except (KeyError, TypeError):
        raise MalformedLedgerDataError("No contract instance data found")

    if not isinstance(instance, dict):
        raise MalformedLedgerDataError("No contract instance data found")

    storage = instance.get("storage")
    if not isinstance(storage, list):
        raise MalformedLedgerDataError("No storage data found or storage is not an array")
    return storage


def is_escrow_storage_key(key) -> bool:
    if not isinstance(key, dict):
        return False
    vec = key.get("vec")
    if not isinstance(vec, list) or not vec or not isinstance(vec[0], dict):
        return False
    return vec[0].get("symbol") == ESCROW_STORAGE_SYMBOL


def find_escrow_entry(storage):
    for item in storage:
        if isinstance(item, dict) and is_escrow_storage_key(item.get("key")):
            return item
    return None


def fetch_escrow_storage(contract_id, network_config, client=None):
    """
    Fetch the "Escrow" sub-tree of a contract's instance storage.

    The contract ID is not re-validated here; callers validate it first.

    Returns:
        tuple[MapEntry, ...] | None: The escrow map, an empty tuple when the
        escrow value is not a map, or None when the node has no ledger entry
        for this contract on the given network.

    Raises:
        RpcError: Transport failure, unparsable response or RPC error payload.
        MalformedLedgerDataError: The entry lacks the contract instance
            wrapper or the storage has no "Escrow" entry.
    """
    client = client or get_rpc_client(network_config)
    logger.info(f"Fetching ledger data for contract ID: {contract_id} on {network_config.network}")

    key = build_contract_instance_key(contract_id)
    result = client.get_ledger_entries([key], xdr_format="json")

    if not isinstance(result, dict):
        raise MalformedLedgerDataError("getLedgerEntries result is not an object")

    entries = result.get("entries") or []
    if not entries:
        logger.info(f"No ledger entry found for contract ID {contract_id} on {network_config.network}")
        return None

    storage = get_contract_instance_storage(entries[0])

    escrow_entry = find_escrow_entry(storage)
    if escrow_entry is None:
        raise MalformedLedgerDataError("Escrow data not found in the contract storage")

    value = escrow_entry.get("val")
    if not isinstance(value, dict):
        raise MalformedLedgerDataError("Escrow value is missing or not a valid object")

    escrow_map = value.get("map")
    if not isinstance(escrow_map, list):
        logger.warning(f"Escrow value map is not an array: {escrow_map}")
        return ()

    logger.debug(f"Escrow map: {json.dumps(escrow_map)}")
    return parse_map_entries(escrow_map)
