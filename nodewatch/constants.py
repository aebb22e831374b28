"""Constants for the nodewatch monitor."""

# Polling
POLL_INTERVAL = 15  # Seconds between head polls
REPORT_DEPTH = 10  # Heights per report, counted down from the highest head

# Throttled RPC calls
VERSION_INTERVAL = 30  # At most one web3_clientVersion call per 30 seconds
VERSION_METHOD = "web3_clientVersion"
HEADER_METHOD = "eth_getBlockByNumber"

# Transport
RPC_TIMEOUT = 10.0  # Seconds, per request
UNLIMITED_RATE = 0  # rate_limit <= 0 disables throttling

# Version labels used until a node answers web3_clientVersion
DEFAULT_VERSION = "n/a"
INFURA_VERSION = "Infura V3"
ALCHEMY_VERSION = "Alchemy V2"

# Reorgs of this depth and below are ordinary tip replacements
NOTABLE_REORG_DEPTH = 1

# Storage
DEFAULT_DATA_DIR = "~/.nodewatch/data"
DEFAULT_DB_NAME = "headers.db"

# API
API_HOST = "127.0.0.1"
API_PORT = 8080
