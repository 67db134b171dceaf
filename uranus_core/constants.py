from solders.pubkey import Pubkey

PROGRAM_ID        = Pubkey.from_string("URAa3qGD1qVKKqyQrF8iBVZRTwa4Q8RkMd6Gx7u2KL1")
DEX_PUBKEY        = Pubkey.from_string("URAbknhQPhFiY92S5iM9nhzoZC5Vkch7S5VERa4PmuV")
DEX_FEES_PUBKEY   = Pubkey.from_string("URAfeAaGMoavvTe8vqPwMX6cUvTjq8WMG5c9nFo7Q8j")

SYSTEM_PROGRAM    = Pubkey.from_string("11111111111111111111111111111111")
METADATA_PROGRAM  = Pubkey.from_string("metaqbxxUerdq28cj1RbAWkYQm3ybzjb6a8bt518x1s")

DEFAULT_RPC_URL   = "https://api.mainnet-beta.solana.com"
DEFAULT_PRICE_URL = "https://core.uranus.ag/price"

# PDA seed tags, order-significant
MARKET_SEED       = b"uranus_market"
MARKET_VERSION    = b"v1"
POSITION_SEED     = b"uranus_position"
METADATA_SEED     = b"metadata"

# instruction discriminators (1, 3, 4, 5 are on-chain only)
IX_INITIALIZE     = 0
IX_USER_MODIFY    = 2

LAMPORTS_PER_SOL  = 1_000_000_000
BASIS_POINTS      = 10_000
BASE_FEE_BPS      = 200
LEVERAGE_FEE_BPS  = 10
MIN_LEVERAGE      = 1
MAX_LEVERAGE      = 5
MIN_POSITION_SIZE_LAMPORTS = 10_000_000

POSITION_LONG     = 1
POSITION_SHORT    = -1

SYMBOL_WIDTH      = 32
POSITION_ACCOUNT_SIZE = 32 + 32 + 32 + 8 + 8 + 8 + 8 + 1 + 1 + 8 + 8 + 1
OPEN_POSITION_SIZE    = 32 + 32 + 8 + 8 + 1 + 8 + 1
CLOSE_POSITION_SIZE   = 1 + 8

SIGNATURE_PAGE_SIZE   = 100
TRANSACTION_BATCH_SIZE = 50
OPEN_ORDER_LOG_MARKER = "Position initialized"
