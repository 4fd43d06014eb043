from django.urls import path

from .balances.balances import GetEscrowLiveBalance
from .escrows.escrows import GetEscrowData, GetEscrowRawStorage
from .events.events import GetEscrowEvents
from .export.export import ExportEscrowPdf
from .network.network import NetworkSelection
from .transactions.transactions import GetEscrowTransactions, GetTransactionDetails

urlpatterns = [
    # Escrow viewer endpoints
    # Every endpoint is read only. Parameters come from the query string or a JSON body, and the network is
    # taken from the "network" parameter, then the session, then ESCROW_DEFAULT_NETWORK.

    # Example: http://127.0.0.1:8000/escrow/?contract_id=CAZ6UQX7...&network=testnet&is_mobile=false
    path('escrow/', GetEscrowData.as_view(), name='get_escrow_data'),
    path('escrow/raw/', GetEscrowRawStorage.as_view(), name='get_escrow_raw_storage'),
    path('escrow/balance/', GetEscrowLiveBalance.as_view(), name='get_escrow_live_balance'),

    # Example: http://127.0.0.1:8000/escrow/transactions/?contract_id=CAZ6UQX7...&limit=20&cursor=...
    path('escrow/transactions/', GetEscrowTransactions.as_view(), name='get_escrow_transactions'),
    path('escrow/transactions/details/', GetTransactionDetails.as_view(), name='get_transaction_details'),
    path('escrow/events/', GetEscrowEvents.as_view(), name='get_escrow_events'),

    # Returns application/pdf
    path('escrow/export/pdf/', ExportEscrowPdf.as_view(), name='export_escrow_pdf'),

    # GET the session network, POST {"network": "mainnet"} to change it
    path('network/', NetworkSelection.as_view(), name='network_selection'),
]
