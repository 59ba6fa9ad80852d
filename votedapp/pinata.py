# votedapp/pinata.py
import json
import logging
import os
import time
from typing import Optional, Tuple

import httpx

from votedapp.config import (
    PINATA_API_KEY,
    PINATA_API_URL,
    PINATA_GATEWAY_URL,
    PINATA_SECRET_API_KEY,
    PINATA_TIMEOUT_SECONDS,
)

logger = logging.getLogger(__name__)


class PinataConfigError(Exception):
    """Raised when the Pinata API keys are not configured."""
    pass


class PinataUploadError(Exception):
    """Raised when Pinata does not return a content hash for an upload."""
    pass


class PinataClient:
    """Thin client for Pinata's pinFileToIPFS endpoint."""

    def __init__(
        self,
        api_key: Optional[str] = PINATA_API_KEY,
        secret_api_key: Optional[str] = PINATA_SECRET_API_KEY,
        api_url: str = PINATA_API_URL,
        gateway_url: str = PINATA_GATEWAY_URL,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        if not api_key or not secret_api_key:
            logger.error("Pinata API keys are not set in environment variables")
            raise PinataConfigError("Pinata API keys are not set in environment variables")

        self.gateway_url = gateway_url.rstrip("/")
        self._client = httpx.Client(
            base_url=api_url.rstrip("/"),
            headers={
                "pinata_api_key": api_key,
                "pinata_secret_api_key": secret_api_key,
            },
            timeout=PINATA_TIMEOUT_SECONDS,
            transport=transport,
        )

    def gateway_link(self, ipfs_hash: str) -> str:
        return f"{self.gateway_url}/{ipfs_hash}"

    def pin_file(self, file_path: str, address: str) -> Tuple[str, str]:
        """
        Pin a file on IPFS and tag it with the owning wallet address.

        Returns:
            Tuple of (ipfs_hash, gateway_url)
        """
        metadata = {
            "name": f"{address}_image",
            "keyvalues": {
                "address": address,
                "timestamp": str(int(time.time() * 1000)),
            },
        }

        logger.info(f"Uploading image to Pinata for account: {address}")
        try:
            with open(file_path, "rb") as f:
                response = self._client.post(
                    "/pinning/pinFileToIPFS",
                    files={"file": (os.path.basename(file_path), f)},
                    data={"pinataMetadata": json.dumps(metadata)},
                )
            response.raise_for_status()
        except httpx.HTTPError as e:
            raise PinataUploadError(f"Pinata request failed: {e}") from e

        ipfs_hash = response.json().get("IpfsHash")
        if not ipfs_hash:
            raise PinataUploadError("Failed to get valid IPFS hash from Pinata")

        logger.info(f"Successfully uploaded to IPFS with hash: {ipfs_hash}")
        return ipfs_hash, self.gateway_link(ipfs_hash)

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> "PinataClient":
        return self

    def __exit__(self, *exc) -> None:
        self.close()
