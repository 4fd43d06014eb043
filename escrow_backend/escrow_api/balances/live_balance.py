import asyncio
import logging
from dataclasses import dataclass, asdict
from decimal import Decimal
from typing import Optional

from .token_service import sac_contract_id_from_asset, fetch_token_decimals, fetch_token_balance
from ..constants.constants import LIVE_BALANCE_DEFAULT_DECIMALS, LIVE_BALANCE_MAX_DECIMALS, MISMATCH_MAX_PRECISION
from ..escrows.escrow_mapper import coerce_escrow_map, format_fixed, scale_integer, DECIMAL_CONTEXT
from ..escrows.tagged_value import AddressValue, StringValue, U32Value, I128Value, MapValue, find_entry, \
    i128_to_int_flexible
from ..rpc.rpc_client import get_rpc_client

logger = logging.getLogger('escrow_app')


@dataclass(frozen=True)
class LiveBalance:
    ledger_balance: Optional[str] = None
    decimals: Optional[int] = None
    mismatch: bool = False

    def to_dict(self):
        return asdict(self)


NO_LIVE_BALANCE = LiveBalance()


@dataclass(frozen=True)
class TrustlineMeta:
    code: Optional[str] = None
    issuer: Optional[str] = None
    token_contract_id: Optional[str] = None
    decimals: Optional[int] = None


def _text(value):
    if isinstance(value, (StringValue, AddressValue)) and value.value:
        return value.value
    return None


def extract_trustline_meta(escrow_map) -> Optional[TrustlineMeta]:
    trustline = find_entry(escrow_map, 'trustline')
    if not isinstance(trustline, MapValue):
        return None

    # Explicit contract_id wins over the address entry
    contract_id = trustline.get('contract_id')
    token_contract_id = contract_id.value if isinstance(contract_id, StringValue) and contract_id.value else None
    if token_contract_id is None:
        token_contract_id = _text(trustline.get('address'))

    decimals = trustline.get('decimals')
    return TrustlineMeta(
        code=_text(trustline.get('code')),
        issuer=_text(trustline.get('issuer')),
        token_contract_id=token_contract_id,
        decimals=decimals.value if isinstance(decimals, U32Value) else None,
    )


def normalize_metadata_decimals(decimals: int) -> int:
    """Stored decimals of 1000 or more that are an exact power of ten are a scale factor; use the exponent."""
    digits = str(decimals)
    if decimals >= 1000 and digits == "1" + "0" * (len(digits) - 1):
        return len(digits) - 1
    return decimals


def clamp_live_decimals(decimals) -> int:
    return max(0, min(LIVE_BALANCE_MAX_DECIMALS, int(decimals)))


def is_balance_mismatch(stored_raw: int, live_raw: int, decimals: int) -> bool:
    """True when stored and live balances differ by one unit or more at min(decimals, 6) places."""
    precision = min(decimals, MISMATCH_MAX_PRECISION)
    unit = Decimal(1).scaleb(-precision, context=DECIMAL_CONTEXT)
    difference = abs(scale_integer(stored_raw, decimals) - scale_integer(live_raw, decimals))
    return difference >= unit


def resolve_token_contract_id(meta: TrustlineMeta, network_config):
    if meta.token_contract_id:
        return meta.token_contract_id
    if meta.code and meta.issuer:
        return sac_contract_id_from_asset(meta.code, meta.issuer, network_config.network_passphrase)
    return None


async def resolve_live_balance(contract_id, escrow_map, network_config, client=None) -> LiveBalance:
    """
    Read the escrow's live token balance and compare it with the stored one.

    Runs the blocking simulations in worker threads. Never raises; any failure
    is logged and reported as "no live balance".
    """
    try:
        return await _resolve_live_balance(contract_id, escrow_map, network_config, client)
    except Exception as e:
        logger.error(f"Live balance unavailable for {contract_id} on {network_config.network}: {e}")
        return NO_LIVE_BALANCE


async def _resolve_live_balance(contract_id, escrow_map, network_config, client):
    escrow_map = coerce_escrow_map(escrow_map)
    meta = extract_trustline_meta(escrow_map)
    if meta is None:
        logger.info(f"No trustline metadata for {contract_id}, skipping live balance")
        return NO_LIVE_BALANCE

    token_contract_id = resolve_token_contract_id(meta, network_config)
    if not token_contract_id:
        logger.info(f"No token contract for {contract_id}, skipping live balance")
        return NO_LIVE_BALANCE

    client = client or get_rpc_client(network_config)

    if meta.decimals is not None:
        decimals = normalize_metadata_decimals(meta.decimals)
    else:
        decimals = await asyncio.to_thread(fetch_token_decimals, client, network_config, token_contract_id)
    decimals = clamp_live_decimals(decimals)

    live_raw = await asyncio.to_thread(fetch_token_balance, client, network_config, token_contract_id, contract_id)
    if live_raw is None:
        logger.info(f"Token {token_contract_id} returned no balance for {contract_id}")
        return LiveBalance(ledger_balance=None, decimals=decimals, mismatch=False)

    ledger_balance = format_fixed(scale_integer(live_raw, decimals), decimals)

    mismatch = False
    stored = find_entry(escrow_map, 'balance')
    if isinstance(stored, I128Value):
        stored_raw = i128_to_int_flexible(stored)
        if stored_raw is not None:
            mismatch = is_balance_mismatch(stored_raw, live_raw, decimals)

    logger.info(f"Live balance for {contract_id}: {ledger_balance} ({decimals} decimals, mismatch {mismatch})")
    return LiveBalance(ledger_balance=ledger_balance, decimals=decimals, mismatch=mismatch)
