SUPPORTED_NETWORKS = ('testnet', 'mainnet')

TESTNET_NETWORK_PASSPHRASE = 'Test SDF Network ; September 2015'
MAINNET_NETWORK_PASSPHRASE = 'Public Global Stellar Network ; September 2015'

JSON_RPC_VERSION = '2.0'

# Contract strkey: "C" followed by 55 base32 characters
CONTRACT_ID_PATTERN = r"^C[A-Z2-7]{55}$"
TRANSACTION_HASH_PATTERN = r"^[A-Fa-f0-9]{64}$"

ESCROW_STORAGE_SYMBOL = 'Escrow'
NOT_AVAILABLE = 'N/A'

# Mapper and live balance fall back to different decimal counts when the
# trustline carries no "decimals" entry. The mapper keeps the 2 places the
# viewer has always shown; the live path uses the Stellar asset default of 7.
# Unifying them changes output for escrows without decimals metadata.
MAPPER_DEFAULT_DECIMALS = 2
MAPPER_MAX_DECIMALS = 18
LIVE_BALANCE_DEFAULT_DECIMALS = 7
LIVE_BALANCE_MAX_DECIMALS = 12
MISMATCH_MAX_PRECISION = 6

# Display rounding
AMOUNT_DISPLAY_PLACES = 0
BALANCE_DISPLAY_PLACES = 2
MILESTONE_AMOUNT_DISPLAY_PLACES = 2

SINGLE_RELEASE = 'single-release'
MULTI_RELEASE = 'multi-release'

# Simulation envelopes
SIMULATION_BASE_FEE = 10000
SIMULATION_TIMEOUT_SECONDS = 30

# History
DEFAULT_HISTORY_LIMIT = 50
MAX_HISTORY_LIMIT = 200
# Roughly seven days of ledgers at ~5 seconds per ledger
EVENTS_LOOKBACK_LEDGERS = 7 * 24 * 3600 // 5
RETENTION_ERROR_CODE = -32600

FETCH_GENERATION_CACHE_TIMEOUT = 600  # 10 minutes

# Constants for text
ENTERING_FUNCTION_LOG = "Entering: {}"
LEAVING_FUNCTION_LOG = "Leaving: {}. Total execution time in ms: {}"
STATUS = 'status'
SUCCESS = 'success'
FAILURE = 'failure'
MESSAGE = 'message'

INVALID_CONTRACT_ID = ("Invalid contract ID '{}'. A contract ID is 56 characters long, starts with 'C' "
                       "and uses only uppercase letters A-Z and digits 2-7.")
MISSING_CONTRACT_ID = "Contract ID is required."
INVALID_NETWORK = "Invalid network '{}'. Supported networks: testnet, mainnet."
INVALID_TRANSACTION_HASH = 'Invalid transaction hash. Expected 64 hexadecimal characters.'
ESCROW_NOT_FOUND = "Contract not found on {}. Try the other network."
NETWORK_ERROR = "Unable to reach the Soroban RPC node. Please check your connection and try again."
MALFORMED_LEDGER_DATA = "The contract storage returned by the node could not be read."
STALE_FETCH = "This request was superseded by a newer request for the same data."
TRANSACTION_NOT_FOUND = "Transaction details not found or unavailable."

NO_RECENT_TRANSACTIONS_NOTICE = "No recent transactions found. Note: RPC typically retains 24h-7 days of history."
NO_RECENT_EVENTS_NOTICE = "No recent events found. Note: RPC typically retains up to 7 days of events."
TRANSACTION_RETENTION_NOTICE = ("Transaction data beyond retention period. "
                                "RPC typically retains 24h-7 days of history.")
EVENT_RETENTION_NOTICE = "Event data beyond retention period. RPC typically retains up to 7 days of events."
TRANSACTION_HISTORY_UNAVAILABLE_NOTICE = ("Unable to fetch transaction history. "
                                          "This may be due to retention limits or network issues.")
EVENT_HISTORY_UNAVAILABLE_NOTICE = ("Unable to fetch contract events. "
                                    "This may be due to retention limits or network issues.")

# Mapping contract role keys to human-readable role names
ROLE_MAPPING = {
    'approver': 'Milestone Approver',
    'service_provider': 'Service Provider',
    'release_signer': 'Release Signer',
    'dispute_resolver': 'Dispute Resolver',
    'platform_address': 'Platform Address',
    'receiver': 'Receiver',
}

ROLE_PERMISSIONS = {
    'Milestone Approver': 'Approves or disputes milestones marked as completed.',
    'Service Provider': ('Delivers the product, service, or objective set on the milestone. '
                         'Marks milestones as completed and ready for approval.'),
    'Release Signer': 'Approves the release of funds for the amount set.',
    'Dispute Resolver': 'Resolves disputes by adjusting milestone amounts, updating status, or canceling the contract.',
    'Platform Address': 'An address designated to receive the platform fee.',
    'Receiver': 'The final recipient of funds after conditions are met or disputes are resolved.',
}

PROPERTY_LABELS = {
    'escrow_id': 'Escrow ID',
    'amount': 'Amount',
    'balance': 'Balance',
    'platform_fee': 'Platform Fee',
    'engagement_id': 'Engagement ID',
    'trustline': 'Trustline',
}

FLAG_LABELS = {
    'dispute_flag': 'Disputed',
    'release_flag': 'Released',
    'resolved_flag': 'Resolved',
}
