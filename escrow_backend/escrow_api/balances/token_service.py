import json
import logging

from stellar_sdk import Account, Asset, Keypair, TransactionBuilder, scval
from stellar_sdk import xdr as stellar_xdr

from ..constants.constants import SIMULATION_BASE_FEE, SIMULATION_TIMEOUT_SECONDS, LIVE_BALANCE_DEFAULT_DECIMALS

logger = logging.getLogger('escrow_app')

INTEGER_SCVAL_TYPES = (
    stellar_xdr.SCValType.SCV_U32,
    stellar_xdr.SCValType.SCV_U64,
    stellar_xdr.SCValType.SCV_U128,
)


def sac_contract_id_from_asset(code, issuer, network_passphrase):
    """Derive the Stellar Asset Contract ID of a classic asset."""
    return Asset(code, issuer).contract_id(network_passphrase)


def build_invoke_transaction(client, network_config, contract_id, function_name, parameters=None):
    """
    Build an unsigned envelope invoking ``function_name`` on ``contract_id``.

    The envelope is only ever simulated, so the source is a throwaway keypair
    and its sequence number is taken from the latest ledger.
    """
    latest = client.get_latest_ledger()
    source = Account(Keypair.random().public_key, int(latest["sequence"]))

    envelope = (
        TransactionBuilder(
            source_account=source,
            network_passphrase=network_config.network_passphrase,
            base_fee=SIMULATION_BASE_FEE,
        )
        .append_invoke_contract_function_op(
            contract_id=contract_id,
            function_name=function_name,
            parameters=parameters or [],
        )
        .set_timeout(SIMULATION_TIMEOUT_SECONDS)
        .build()
    )
    return envelope.to_xdr()


def find_retval(node):
    """Search a simulation result for the first string ``retval`` field, depth first."""
    if node is None or isinstance(node, str):
        return None

    if isinstance(node, list):
        for item in node:
            retval = find_retval(item)
            if retval is not None:
                return retval
        return None

    if isinstance(node, dict):
        if isinstance(node.get("retval"), str):
            return node["retval"]

        # Common containers first, then everything else
        ordered_keys = [key for key in ("result", "results") if key in node]
        ordered_keys += [key for key in node if key not in ("result", "results")]
        for key in ordered_keys:
            retval = find_retval(node[key])
            if retval is not None:
                return retval

    return None


def simulate_and_get_retval(client, transaction_xdr):
    """Simulate the envelope and return the decoded return value, or None when the host withheld it."""
    simulation = client.simulate_transaction(transaction_xdr)

    retval = find_retval(simulation)
    if retval:
        return stellar_xdr.SCVal.from_xdr(retval)

    results = simulation.get("results") if isinstance(simulation, dict) else None
    if isinstance(results, list) and results and isinstance(results[0], dict) and results[0].get("xdr"):
        try:
            return stellar_xdr.SCVal.from_xdr(str(results[0]["xdr"]))
        except ValueError as e:
            logger.debug(f"Simulation results[0].xdr is not an SCVal: {e}")

    logger.debug(f"Simulation returned no retval: {json.dumps(simulation, default=str)[:600]}")
    return None


def fetch_token_decimals(client, network_config, token_contract_id):
    """Read ``decimals()`` from the token contract, falling back to 7 when unavailable."""
    try:
        transaction_xdr = build_invoke_transaction(client, network_config, token_contract_id, "decimals")
        sc_val = simulate_and_get_retval(client, transaction_xdr)
    except Exception as e:
        logger.warning(f"Unable to read decimals of token {token_contract_id}: {e}")
        return LIVE_BALANCE_DEFAULT_DECIMALS

    if sc_val is None or sc_val.type not in INTEGER_SCVAL_TYPES:
        logger.info(f"Token {token_contract_id} returned no usable decimals, using {LIVE_BALANCE_DEFAULT_DECIMALS}")
        return LIVE_BALANCE_DEFAULT_DECIMALS

    return int(scval.to_native(sc_val))


def fetch_token_balance(client, network_config, token_contract_id, owner_address):
    """
    Read ``balance(owner_address)`` from the token contract.

    Returns:
        int | None: The raw, unscaled balance, or None when the return value
        is unavailable or is not an i128.
    """
    transaction_xdr = build_invoke_transaction(client, network_config, token_contract_id, "balance",
                                               [scval.to_address(owner_address)])
    sc_val = simulate_and_get_retval(client, transaction_xdr)
    if sc_val is None or sc_val.type != stellar_xdr.SCValType.SCV_I128:
        return None
    return scval.from_int128(sc_val)
