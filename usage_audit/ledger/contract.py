"""ABI of the UsageLogger ledger contract."""

LOG_USAGE_FUNCTION = "logUsage"
LAST_SEEN_AT_FUNCTION = "lastSeenAt"
USAGE_LOGGED_EVENT = "UsageLogged"

# logUsage(bytes32 apiKeyHash, uint256 timestamp, bytes32 requestHash, string tag)
#   emits UsageLogged and advances lastSeenAt[apiKeyHash] only when
#   timestamp is greater than the stored value.
USAGE_LOGGER_ABI: list[dict] = [
    {
        "type": "function",
        "name": LOG_USAGE_FUNCTION,
        "stateMutability": "nonpayable",
        "inputs": [
            {"name": "apiKeyHash", "type": "bytes32"},
            {"name": "timestamp", "type": "uint256"},
            {"name": "requestHash", "type": "bytes32"},
            {"name": "tag", "type": "string"},
        ],
        "outputs": [],
    },
    {
        "type": "function",
        "name": LAST_SEEN_AT_FUNCTION,
        "stateMutability": "view",
        "inputs": [{"name": "", "type": "bytes32"}],
        "outputs": [{"name": "", "type": "uint256"}],
    },
    {
        "type": "event",
        "name": USAGE_LOGGED_EVENT,
        "anonymous": False,
        "inputs": [
            {"name": "submitter", "type": "address", "indexed": True},
            {"name": "apiKeyHash", "type": "bytes32", "indexed": True},
            {"name": "timestamp", "type": "uint256", "indexed": True},
            {"name": "requestHash", "type": "bytes32", "indexed": False},
            {"name": "tag", "type": "string", "indexed": False},
        ],
    },
]
