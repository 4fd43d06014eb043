import json
import threading
from unittest.mock import patch, MagicMock

from django.core.cache import cache
from django.db import connections
from django.conf import settings
from django.test import SimpleTestCase, RequestFactory
from django.urls import reverse
from rest_framework.test import APIClient

from .fixtures import CONTRACT_ID, TX_HASH, single_release_escrow, multi_release_escrow
from ..balances.live_balance import LiveBalance
from ..constants.constants import MISSING_CONTRACT_ID, NETWORK_ERROR, STALE_FETCH, TRANSACTION_NOT_FOUND, \
    MALFORMED_LEDGER_DATA
from ..errors.error_handling import RpcProtocolError, MalformedLedgerDataError
from ..escrows.escrows_util import FetchGenerationTracker
from ..escrows.tagged_value import parse_map_entries
from ..transactions.transactions_util import TransactionPage
from ..events.events_util import EventPage

FETCH_STORAGE = 'escrow_api.escrows.escrows_util.fetch_escrow_storage'


class GetEscrowDataViewTestCase(SimpleTestCase):
    def setUp(self):
        cache.clear()
        self.client = APIClient()
        self.url = reverse('get_escrow_data')

    @patch(FETCH_STORAGE)
    def test_get_escrow_data_success(self, mock_fetch):
        mock_fetch.return_value = parse_map_entries(single_release_escrow())

        response = self.client.get(self.url, {'contract_id': CONTRACT_ID})

        self.assertEqual(response.status_code, 200)
        body = response.json()
        self.assertEqual(body['status'], 'success')
        self.assertEqual(body['network'], 'testnet')
        self.assertEqual(body['result']['properties']['amount'], '100')
        self.assertEqual(body['result']['escrow_type'], 'single-release')
        self.assertEqual(body['role_labels']['approver'], 'Milestone Approver')
        self.assertEqual(body['explorer_url'], f"https://stellar.expert/explorer/testnet/contract/{CONTRACT_ID}")
        self.assertEqual(mock_fetch.call_args.args[1].network, 'testnet')

    @patch(FETCH_STORAGE)
    def test_post_json_body_with_mobile_flag(self, mock_fetch):
        mock_fetch.return_value = parse_map_entries(multi_release_escrow())

        response = self.client.post(self.url, json.dumps({'contract_id': CONTRACT_ID, 'network': 'mainnet',
                                                          'is_mobile': True}), content_type='application/json')

        self.assertEqual(response.status_code, 200)
        body = response.json()
        self.assertEqual(body['network'], 'mainnet')
        self.assertEqual(body['result']['escrow_type'], 'multi-release')
        self.assertEqual(body['result']['milestones'][0]['amount'], '30.00')

    @patch(FETCH_STORAGE)
    def test_missing_contract_id(self, mock_fetch):
        response = self.client.get(self.url)

        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json(), {'status': 'failure', 'message': MISSING_CONTRACT_ID})
        mock_fetch.assert_not_called()

    @patch(FETCH_STORAGE)
    def test_invalid_contract_id(self, mock_fetch):
        response = self.client.get(self.url, {'contract_id': 'GABC'})

        self.assertEqual(response.status_code, 400)
        self.assertIn("56 characters", response.json()['message'])
        mock_fetch.assert_not_called()

    @patch(FETCH_STORAGE)
    def test_invalid_network(self, mock_fetch):
        response = self.client.get(self.url, {'contract_id': CONTRACT_ID, 'network': 'futurenet'})

        self.assertEqual(response.status_code, 400)
        mock_fetch.assert_not_called()

    @patch(FETCH_STORAGE, return_value=None)
    def test_not_found_suggests_other_network(self, mock_fetch):
        response = self.client.get(self.url, {'contract_id': CONTRACT_ID, 'network': 'testnet'})

        self.assertEqual(response.status_code, 404)
        self.assertEqual(response.json()['message'], "Contract not found on Testnet. Try the other network.")

    @patch(FETCH_STORAGE, side_effect=RpcProtocolError(-32603, "internal error"))
    def test_rpc_error_is_bad_gateway(self, mock_fetch):
        response = self.client.get(self.url, {'contract_id': CONTRACT_ID})

        self.assertEqual(response.status_code, 502)
        self.assertEqual(response.json()['message'], NETWORK_ERROR)

    @patch(FETCH_STORAGE, side_effect=MalformedLedgerDataError("no storage"))
    def test_malformed_storage_is_bad_gateway(self, mock_fetch):
        response = self.client.get(self.url, {'contract_id': CONTRACT_ID})

        self.assertEqual(response.status_code, 502)
        self.assertEqual(response.json()['message'], MALFORMED_LEDGER_DATA)

    @patch('escrow_api.escrows.escrows.FetchGenerationTracker.is_current', return_value=False)
    @patch(FETCH_STORAGE)
    def test_superseded_fetch_is_conflict(self, mock_fetch, mock_is_current):
        mock_fetch.return_value = parse_map_entries(single_release_escrow())

        response = self.client.get(self.url, {'contract_id': CONTRACT_ID})

        self.assertEqual(response.status_code, 409)
        self.assertEqual(response.json()['message'], STALE_FETCH)

    @patch(FETCH_STORAGE)
    def test_network_selection_is_remembered(self, mock_fetch):
        mock_fetch.return_value = parse_map_entries(single_release_escrow())

        self.client.get(self.url, {'contract_id': CONTRACT_ID, 'network': 'mainnet'})
        response = self.client.get(self.url, {'contract_id': CONTRACT_ID})

        self.assertEqual(response.json()['network'], 'mainnet')

    @patch(FETCH_STORAGE)
    def test_raw_storage(self, mock_fetch):
        mock_fetch.return_value = parse_map_entries(single_release_escrow())

        response = self.client.get(reverse('get_escrow_raw_storage'), {'contract_id': CONTRACT_ID})

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()['result']['amount'], '1000000000')
        self.assertEqual(response.json()['result']['title'], 'Website redesign')


class GetEscrowLiveBalanceViewTestCase(SimpleTestCase):
    def setUp(self):
        cache.clear()
        self.client = APIClient()

    @patch(FETCH_STORAGE)
    def test_live_balance(self, mock_fetch):
        mock_fetch.return_value = parse_map_entries(single_release_escrow())

        async def fake_resolve(contract_id, escrow_map, network_config):
            return LiveBalance(ledger_balance='50.0000000', decimals=7, mismatch=False)

        with patch('escrow_api.balances.balances.resolve_live_balance', new=fake_resolve):
            response = self.client.get(reverse('get_escrow_live_balance'), {'contract_id': CONTRACT_ID})

        self.assertEqual(response.status_code, 200)
        body = response.json()
        self.assertEqual(body['result'], {'ledger_balance': '50.0000000', 'decimals': 7, 'mismatch': False})
        self.assertEqual(body['stored_balance'], '50.0000000')


class HistoryViewsTestCase(SimpleTestCase):
    def setUp(self):
        cache.clear()
        self.client = APIClient()

    @patch('escrow_api.transactions.transactions.fetch_transactions')
    def test_transactions(self, mock_fetch):
        mock_fetch.return_value = TransactionPage(items=[{'tx_hash': TX_HASH}], cursor='c', has_more=True)

        response = self.client.get(reverse('get_escrow_transactions'),
                                   {'contract_id': CONTRACT_ID, 'cursor': 'prev', 'limit': 20})

        self.assertEqual(response.status_code, 200)
        self.assertTrue(response.json()['result']['has_more'])
        self.assertEqual(mock_fetch.call_args.kwargs['cursor'], 'prev')
        self.assertEqual(mock_fetch.call_args.kwargs['limit'], 20)

    @patch('escrow_api.transactions.transactions.fetch_transactions')
    def test_transactions_default_page_size(self, mock_fetch):
        mock_fetch.return_value = TransactionPage()

        self.client.get(reverse('get_escrow_transactions'), {'contract_id': CONTRACT_ID})
        self.assertEqual(mock_fetch.call_args.kwargs['limit'], 50)

    @patch('escrow_api.transactions.transactions.fetch_transactions')
    def test_transactions_limit_out_of_range(self, mock_fetch):
        response = self.client.get(reverse('get_escrow_transactions'), {'contract_id': CONTRACT_ID, 'limit': 500})

        self.assertEqual(response.status_code, 400)
        self.assertIn("limit", response.json()['message'])
        mock_fetch.assert_not_called()

    @patch('escrow_api.transactions.transactions.fetch_transaction_details', return_value=None)
    def test_transaction_details_not_found(self, mock_fetch):
        response = self.client.get(reverse('get_transaction_details'), {'tx_hash': TX_HASH})

        self.assertEqual(response.status_code, 404)
        self.assertEqual(response.json()['message'], TRANSACTION_NOT_FOUND)

    def test_transaction_details_invalid_hash(self):
        response = self.client.get(reverse('get_transaction_details'), {'tx_hash': 'nothex'})
        self.assertEqual(response.status_code, 400)

    @patch('escrow_api.events.events.fetch_events')
    def test_events(self, mock_fetch):
        mock_fetch.return_value = EventPage(items=[{'id': 'a'}], latest_ledger=99)

        response = self.client.get(reverse('get_escrow_events'), {'contract_id': CONTRACT_ID})

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()['result']['latest_ledger'], 99)


class ExportEscrowPdfViewTestCase(SimpleTestCase):
    def setUp(self):
        self.client = APIClient()

    @patch(FETCH_STORAGE)
    def test_pdf_export(self, mock_fetch):
        mock_fetch.return_value = parse_map_entries(multi_release_escrow())

        response = self.client.get(reverse('export_escrow_pdf'), {'contract_id': CONTRACT_ID})

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response['Content-Type'], 'application/pdf')
        self.assertIn(f'escrow-{CONTRACT_ID}-testnet.pdf', response['Content-Disposition'])
        self.assertTrue(response.content.startswith(b'%PDF'))


class NetworkSelectionViewTestCase(SimpleTestCase):
    def setUp(self):
        self.client = APIClient()
        self.url = reverse('network_selection')

    def test_default_network(self):
        response = self.client.get(self.url)

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()['result']['network'], 'testnet')
        self.assertEqual(response.json()['available_networks'], ['testnet', 'mainnet'])

    def test_selection_persists(self):
        response = self.client.post(self.url, {'network': 'Mainnet'}, format='json')
        self.assertEqual(response.status_code, 200)

        response = self.client.get(self.url)
        self.assertEqual(response.json()['result']['network'], 'mainnet')
        self.assertEqual(response.json()['result']['network_passphrase'],
                         'Public Global Stellar Network ; September 2015')

    def test_invalid_network(self):
        response = self.client.post(self.url, {'network': 'futurenet'}, format='json')
        self.assertEqual(response.status_code, 400)


class FetchGenerationTrackerTestCase(SimpleTestCase):
    def setUp(self):
        cache.clear()
        self.request = RequestFactory().get('/')
        self.request.session = {}

    def test_server_counter(self):
        tracker = FetchGenerationTracker(self.request, 'escrow', CONTRACT_ID)
        first = tracker.register()
        second = tracker.register()

        self.assertFalse(tracker.is_current(first))
        self.assertTrue(tracker.is_current(second))

    def test_client_sequence(self):
        tracker = FetchGenerationTracker(self.request, 'escrow', CONTRACT_ID)
        tracker.register(10)
        tracker.register(5)

        self.assertFalse(tracker.is_current(5))
        self.assertTrue(tracker.is_current(10))

    def test_keys_are_independent(self):
        escrow_tracker = FetchGenerationTracker(self.request, 'escrow', CONTRACT_ID)
        events_tracker = FetchGenerationTracker(self.request, 'events', CONTRACT_ID)
        generation = escrow_tracker.register()
        events_tracker.register()
        events_tracker.register()

        self.assertTrue(escrow_tracker.is_current(generation))

    def test_older_client_sequence_cannot_overwrite_newer(self):
        # seq 6 registers from another thread while seq 5 is between its read and write
        newer = {}
        real_cache = cache

        def get_with_newer_registration(key, default=None):
            current = real_cache.get(key, default)
            if 'thread' not in newer:
                newer['thread'] = threading.Thread(
                    target=FetchGenerationTracker(self.request, 'escrow', CONTRACT_ID).register, args=(6,))
                newer['thread'].start()
                newer['thread'].join(timeout=0.2)
            return current

        mock_cache = MagicMock(wraps=real_cache)
        mock_cache.get.side_effect = get_with_newer_registration
        with patch('escrow_api.escrows.escrows_util.cache', mock_cache):
            FetchGenerationTracker(self.request, 'escrow', CONTRACT_ID).register(5)
            newer['thread'].join()

        tracker = FetchGenerationTracker(self.request, 'escrow', CONTRACT_ID)
        self.assertEqual(cache.get(tracker.cache_key), 6)
        self.assertTrue(tracker.is_current(6))
        self.assertFalse(tracker.is_current(5))


class StatelessSettingsTestCase(SimpleTestCase):
    def test_no_database_is_configured(self):
        self.assertEqual(settings.DATABASES, {})
        self.assertEqual(connections['default'].settings_dict['ENGINE'], 'django.db.backends.dummy')

    def test_sessions_live_in_signed_cookies(self):
        self.assertEqual(settings.SESSION_ENGINE, 'django.contrib.sessions.backends.signed_cookies')
