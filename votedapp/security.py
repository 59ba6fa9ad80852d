import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

from eth_account import Account
from eth_account.messages import encode_defunct
from fastapi import Header, HTTPException
from jose import JWTError, jwt
from web3 import Web3

from votedapp.config import ACCESS_TOKEN_EXPIRE_MINUTES, ALGORITHM, SECRET_KEY, WELCOME_MESSAGE

logger = logging.getLogger(__name__)


# Create JWT access token scoped to a wallet address
def create_access_token(address: str, expires_delta: int = ACCESS_TOKEN_EXPIRE_MINUTES) -> str:
    expire = datetime.now(timezone.utc) + timedelta(minutes=expires_delta)
    to_encode = {"sub": address, "exp": expire}
    return jwt.encode(to_encode, SECRET_KEY, algorithm=ALGORITHM)


# Decode a token and return the address it was issued for
def decode_access_token(token: str) -> Optional[str]:
    try:
        payload = jwt.decode(token, SECRET_KEY, algorithms=[ALGORITHM])
    except JWTError as e:
        logger.warning(f"Rejected access token: {e}")
        return None
    return payload.get("sub")


def normalize_address(address: str) -> str:
    """
    Return the EIP-55 checksum form of an address.
    Raises ValueError for anything that is not a 20-byte hex address.
    """
    if not address or not Web3.is_address(address):
        raise ValueError(f"Invalid wallet address: {address!r}")
    return Web3.to_checksum_address(address)


def recover_signer(signature: str, message: str = WELCOME_MESSAGE) -> Optional[str]:
    """Recover the address that produced ``signature`` over the personal message."""
    try:
        return Account.recover_message(encode_defunct(text=message), signature=signature)
    except Exception as e:
        logger.warning(f"Could not recover signer from signature: {e}")
        return None


def verify_signature(address: str, signature: str) -> bool:
    recovered = recover_signer(signature)
    if recovered is None:
        return False
    return recovered.lower() == address.lower()


def get_account_address(
    x_access_token: Optional[str] = Header(None),
    authorization: Optional[str] = Header(None),
) -> str:
    """
    FastAPI dependency guarding privileged routes.
    Accepts the token in ``x-access-token`` or as ``Authorization: Bearer <token>``.
    """
    token = x_access_token
    if not token and authorization:
        scheme, _, value = authorization.partition(" ")
        if scheme.lower() == "bearer" and value:
            token = value.strip()

    if not token:
        raise HTTPException(status_code=401, detail="Authentication token missing.")

    address = decode_access_token(token)
    if not address:
        raise HTTPException(status_code=401, detail="Invalid or expired token.")
    return address
