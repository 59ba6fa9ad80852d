import logging

from fastapi import APIRouter, HTTPException, Query

from votedapp.schemas import AuthenticationRequest, TokenOut
from votedapp.security import create_access_token, normalize_address, verify_signature

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["Authentication"])


@router.post("/authentication", response_model=TokenOut)
def authenticate(body: AuthenticationRequest, accountAddress: str = Query(...)):
    """
    Exchange a signed welcome message for a bearer token.
    The token is only issued when the recovered signer matches ``accountAddress``.
    """
    try:
        address = normalize_address(accountAddress)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    if not verify_signature(address, body.signature):
        logger.warning(f"Signature does not match claimed address {address}")
        raise HTTPException(status_code=401, detail="Authentication failed.")

    logger.info(f"Issued access token for {address}")
    return {"token": create_access_token(address)}
