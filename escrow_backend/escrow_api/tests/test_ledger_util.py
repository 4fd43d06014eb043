from unittest.mock import patch, MagicMock

from django.test import SimpleTestCase

from .fixtures import CONTRACT_ID, entry, string, vec, symbol, single_release_escrow, ledger_entries_result
from ..errors.error_handling import MalformedLedgerDataError, RpcProtocolError
from ..escrows.tagged_value import StringValue, find_entry
from ..ledger.ledger_util import fetch_escrow_storage, get_contract_instance_storage
from ..network.network_config import get_network_config


@patch('escrow_api.ledger.ledger_util.build_contract_instance_key', return_value='AAAABgAAAAE=')
class FetchEscrowStorageTestCase(SimpleTestCase):
    def setUp(self):
        self.network_config = get_network_config('testnet')
        self.client = MagicMock()

    def test_returns_escrow_map(self, mock_build_key):
        self.client.get_ledger_entries.return_value = ledger_entries_result(
            single_release_escrow(), extra_storage=[{"key": vec(symbol("Admin")), "val": string("x")}])

        storage = fetch_escrow_storage(CONTRACT_ID, self.network_config, client=self.client)

        self.assertEqual(find_entry(storage, "title"), StringValue("Website redesign"))
        mock_build_key.assert_called_once_with(CONTRACT_ID)
        self.client.get_ledger_entries.assert_called_once_with(['AAAABgAAAAE='], xdr_format="json")

    def test_no_entries_means_not_found(self, mock_build_key):
        self.client.get_ledger_entries.return_value = {"entries": [], "latestLedger": 1}
        self.assertIsNone(fetch_escrow_storage(CONTRACT_ID, self.network_config, client=self.client))

        self.client.get_ledger_entries.return_value = {"latestLedger": 1}
        self.assertIsNone(fetch_escrow_storage(CONTRACT_ID, self.network_config, client=self.client))

    def test_missing_escrow_key_is_malformed(self, mock_build_key):
        result = ledger_entries_result([])
        storage = result["entries"][0]["dataJson"]["contract_data"]["val"]["contract_instance"]["storage"]
        storage[0]["key"] = vec(symbol("Other"))
        self.client.get_ledger_entries.return_value = result

        with self.assertRaises(MalformedLedgerDataError):
            fetch_escrow_storage(CONTRACT_ID, self.network_config, client=self.client)

    def test_missing_instance_wrapper_is_malformed(self, mock_build_key):
        self.client.get_ledger_entries.return_value = {"entries": [{"dataJson": {"contract_data": {"val": {}}}}]}

        with self.assertRaises(MalformedLedgerDataError):
            fetch_escrow_storage(CONTRACT_ID, self.network_config, client=self.client)

    def test_escrow_value_that_is_not_a_map_yields_empty_map(self, mock_build_key):
        result = ledger_entries_result([])
        storage = result["entries"][0]["dataJson"]["contract_data"]["val"]["contract_instance"]["storage"]
        storage[0]["val"] = string("not a map")
        self.client.get_ledger_entries.return_value = result

        self.assertEqual(fetch_escrow_storage(CONTRACT_ID, self.network_config, client=self.client), ())

    def test_rpc_errors_propagate(self, mock_build_key):
        self.client.get_ledger_entries.side_effect = RpcProtocolError(-32602, "invalid key")

        with self.assertRaises(RpcProtocolError):
            fetch_escrow_storage(CONTRACT_ID, self.network_config, client=self.client)


class ContractInstanceStorageTestCase(SimpleTestCase):
    def test_accepts_data_json_as_string(self):
        storage = get_contract_instance_storage({
            "dataJson": '{"contract_data": {"val": {"contract_instance": {"storage": [{"key": 1}]}}}}'
        })
        self.assertEqual(storage, [{"key": 1}])

    def test_storage_must_be_a_list(self):
        with self.assertRaises(MalformedLedgerDataError):
            get_contract_instance_storage({"dataJson": {"contract_data": {"val": {"contract_instance": {}}}}})

    def test_invalid_json_is_malformed(self):
        with self.assertRaises(MalformedLedgerDataError):
            get_contract_instance_storage({"dataJson": "{not json"})

    def test_escrow_entry_key_can_carry_extra_items(self):
        storage = [{"key": vec(symbol("Escrow"), string("v2")), "val": {"map": [entry("title", string("x"))]}}]
        with patch('escrow_api.ledger.ledger_util.build_contract_instance_key', return_value='k'):
            client = MagicMock()
            client.get_ledger_entries.return_value = {"entries": [{"dataJson": {"contract_data": {"val": {
                "contract_instance": {"storage": storage}}}}}]}
            result = fetch_escrow_storage(CONTRACT_ID, get_network_config('testnet'), client=client)
        self.assertEqual(find_entry(result, "title"), StringValue("x"))
