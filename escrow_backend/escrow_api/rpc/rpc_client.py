import itertools
import json
import logging

import requests

from ..constants.constants import JSON_RPC_VERSION
from ..errors.error_handling import RpcTransportError, RpcResponseError, RpcProtocolError

logger = logging.getLogger('escrow_app')

_request_ids = itertools.count(1)


class SorobanRpcClient:
    """
    Minimal JSON-RPC 2.0 client for a Soroban RPC node.

    Only the read methods used by the viewer are wrapped. No retries are
    attempted; a failed call raises and the caller decides what to show.
    """

    def __init__(self, rpc_url, timeout=None, session=None):
        self.rpc_url = rpc_url
        self.timeout = timeout
        self.session = session or requests.Session()

    def call(self, method, params=None):
        body = {"jsonrpc": JSON_RPC_VERSION, "id": next(_request_ids), "method": method}
        if params is not None:
            body["params"] = params  # Only attached when provided

        logger.debug(f"RPC request {method} to {self.rpc_url}: {json.dumps(params)}")

        try:
            response = self.session.post(self.rpc_url, json=body, timeout=self.timeout)
        except requests.RequestException as e:
            raise RpcTransportError(f"RPC {method} request failed: {e}") from e

        if not response.ok:
            raise RpcTransportError(f"RPC {method} HTTP {response.status_code}")

        try:
            payload = response.json()
        except ValueError as e:
            raise RpcResponseError(f"RPC {method} returned a response that is not JSON") from e

        if not isinstance(payload, dict):
            raise RpcResponseError(f"RPC {method} returned an unexpected payload")

        error = payload.get("error")
        if error:
            if isinstance(error, dict):
                raise RpcProtocolError(error.get("code"), error.get("message") or "unknown error")
            raise RpcProtocolError(None, str(error))

        if "result" not in payload or payload["result"] is None:
            raise RpcResponseError(f"RPC {method} returned no result")

        return payload["result"]

    def get_ledger_entries(self, keys, xdr_format="json"):
        params = {"keys": list(keys)}
        if xdr_format:
            params["xdrFormat"] = xdr_format
        return self.call("getLedgerEntries", params)

    def get_latest_ledger(self):
        return self.call("getLatestLedger")

    def simulate_transaction(self, transaction_xdr):
        return self.call("simulateTransaction", {"transaction": transaction_xdr})

    def get_transactions(self, start_ledger=None, cursor=None, limit=None, filters=None):
        pagination = {}
        if cursor:
            pagination["cursor"] = cursor
        if limit:
            pagination["limit"] = limit

        params = {}
        # The node rejects startLedger together with a cursor
        if start_ledger and not cursor:
            params["startLedger"] = start_ledger
        if pagination:
            params["pagination"] = pagination
        if filters:
            params["filters"] = filters
        return self.call("getTransactions", params)

    def get_transaction(self, tx_hash, xdr_format="json"):
        params = {"hash": tx_hash}
        if xdr_format:
            params["xdrFormat"] = xdr_format
        return self.call("getTransaction", params)

    def get_events(self, filters, start_ledger=None, cursor=None, limit=None):
        pagination = {}
        if cursor:
            pagination["cursor"] = cursor
        if limit:
            pagination["limit"] = limit

        params = {"filters": filters}
        if start_ledger and not cursor:
            params["startLedger"] = start_ledger
        if pagination:
            params["pagination"] = pagination
        return self.call("getEvents", params)


def get_rpc_client(network_config) -> SorobanRpcClient:
    """
    Build a JSON-RPC client for the given network.

    The network configuration is passed in explicitly by every caller; there is
    no process-wide "current network".
    """
    return SorobanRpcClient(network_config.rpc_url, timeout=network_config.rpc_timeout)
