# votedapp/config.py
# Central place for environment-driven settings and fixed constants
import os
from dotenv import load_dotenv

load_dotenv()

# --- Database ---
MONGO_URI = os.getenv("MONGO_URI", "mongodb://localhost:27017")
MONGO_DB = os.getenv("MONGO_DB", "voting_dapp")
VOTERS_COLLECTION_NAME = "voters"
CANDIDATES_COLLECTION_NAME = "candidates"

# --- Pinata / IPFS ---
PINATA_API_KEY = os.getenv("PINATA_API_KEY")
PINATA_SECRET_API_KEY = os.getenv("PINATA_SECRET_API_KEY")
PINATA_API_URL = os.getenv("PINATA_API_URL", "https://api.pinata.cloud")
PINATA_GATEWAY_URL = os.getenv("PINATA_GATEWAY_URL", "https://gateway.pinata.cloud/ipfs")
PINATA_TIMEOUT_SECONDS = float(os.getenv("PINATA_TIMEOUT_SECONDS", "60"))

# Uploaded files are staged here before pinning
UPLOAD_TMP_DIR = os.getenv("UPLOAD_TMP_DIR", "data/tmp")

# --- Security & JWT ---
# In production, set SECRET_KEY from the environment
SECRET_KEY = os.getenv("SECRET_KEY", "a_very_secret_key_for_dev_only")
ALGORITHM = "HS256"
ACCESS_TOKEN_EXPIRE_MINUTES = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", "60"))

# The message every wallet signs during the authentication handshake
WELCOME_MESSAGE = "Welcome to Voting Dapp. You accept our terms and condition"

# --- HTTP ---
CORS_ORIGINS = [
    origin.strip()
    for origin in os.getenv(
        "CORS_ORIGINS",
        "http://localhost:5173,http://localhost:3000",
    ).split(",")
    if origin.strip()
]

# --- Client side ---
BACKEND_BASEURL = os.getenv("BACKEND_BASEURL", "http://localhost:8000")
RPC_URL = os.getenv("RPC_URL", "http://localhost:8545")
SESSION_FILE = os.getenv("SESSION_FILE", "data/session.json")

# Deployed contracts (Holesky testnet)
VOTING_CONTRACT = os.getenv("VOTING_CONTRACT", "0x1FeA3eb1D7Bb6f98EF480D4b308b1bB725c53675")
CK_TOKEN_CONTRACT = os.getenv("CK_TOKEN_CONTRACT", "0xc9cE88752f6bAc4E6449938C0ac399d4C16Bb623")
TOKEN_MARKETPLACE_CONTRACT = os.getenv(
    "TOKEN_MARKETPLACE_CONTRACT", "0x91b3D8F4d1256c79ec9e860e99F9f3415941f9C1"
)
ETHERSCAN_BASE_URL = os.getenv("ETHERSCAN_BASE_URL", "https://holesky.etherscan.io")

# Only this wallet may use the election commission operations
AUTHORIZED_ADDRESS = os.getenv("AUTHORIZED_ADDRESS", "0x00912Bf03a1d1768C8c256649a805089b672Ac31")

# Seconds between refreshes of each polled view
POLL_INTERVALS = {
    "token_balance": 3,
    "token_price": 3,
    "winner": 3,
    "results": 5,
    "vote_eligibility": 30,
}

# Minimum CK token balance (in whole tokens) needed to vote
MIN_TOKENS_TO_VOTE = 1
