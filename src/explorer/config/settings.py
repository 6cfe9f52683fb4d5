import os
from dotenv import load_dotenv
load_dotenv()
# ---- Starknet JSON-RPC nodes ----
RPC_URLS = {
    "mainnet": os.environ.get(
        "STARKNET_RPC_MAINNET", "https://starknet-mainnet.public.blastapi.io/rpc/v0_8"
    ),
    "sepolia": os.environ.get(
        "STARKNET_RPC_SEPOLIA", "https://starknet-sepolia.public.blastapi.io/rpc/v0_8"
    ),
}
RPC_TIMEOUT_SEC = float(os.environ.get("EXPLORER_RPC_TIMEOUT_SEC", "20"))

# ---- Rate limiting ----
REQUESTS_PER_SEC = float(os.environ.get("EXPLORER_REQUESTS_PER_SEC", "5"))
MAX_CONCURRENCY = int(os.environ.get("EXPLORER_MAX_CONCURRENCY", "4"))

# ---- Retry on throttling ----
RETRY_MAX_ATTEMPTS = int(os.environ.get("EXPLORER_RETRY_MAX_ATTEMPTS", "5"))
RETRY_MAX_DURATION_SEC = float(os.environ.get("EXPLORER_RETRY_MAX_DURATION_SEC", "30"))
RETRY_BASE_DELAY_SEC = float(os.environ.get("EXPLORER_RETRY_BASE_DELAY_SEC", "0.5"))
RETRY_MAX_DELAY_SEC = float(os.environ.get("EXPLORER_RETRY_MAX_DELAY_SEC", "8"))

# ---- Discovery ----
TRACE_LOOKUP_BUDGET = int(os.environ.get("EXPLORER_TRACE_LOOKUP_BUDGET", "200"))
EVENT_CHUNK_SIZE = int(os.environ.get("EXPLORER_EVENT_CHUNK_SIZE", "100"))   # minimum chunk

# ---- Block explorer links ----
EXPLORER_BASE_URLS = {
    "mainnet": "https://starkscan.co",
    "sepolia": "https://sepolia.starkscan.co",
}
