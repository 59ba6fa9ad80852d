import logging
from typing import Dict, Optional

import httpx

from votedapp.client.errors import BackendError, ErrorKind, ImageUploadError
from votedapp.config import BACKEND_BASEURL
from votedapp.models.image_model import ImageRole

logger = logging.getLogger(__name__)

UPLOAD_ENDPOINTS = {
    ImageRole.voter: "/api/postVoterImage",
    ImageRole.candidate: "/api/postCandidateImage",
}
LOOKUP_ENDPOINTS = {
    ImageRole.voter: "/api/getVoterImage",
    ImageRole.candidate: "/api/getCandidateImage",
}


class BackendClient:
    """HTTP client for the image relay and authentication API."""

    def __init__(
        self,
        base_url: str = BACKEND_BASEURL,
        transport: Optional[httpx.BaseTransport] = None,
        timeout: float = 30.0,
    ):
        # A trailing slash would produce "//api/..." paths
        self.base_url = base_url.rstrip("/")
        self._client = httpx.Client(base_url=self.base_url, transport=transport, timeout=timeout)

    def _send(self, method: str, url: str, **kwargs) -> httpx.Response:
        try:
            response = self._client.request(method, url, **kwargs)
        except httpx.HTTPError as e:
            logger.error(f"Backend unreachable ({method} {url}): {e}")
            raise BackendError(f"Backend unreachable: {e}") from e
        return response

    @staticmethod
    def _raise_for_status(response: httpx.Response) -> None:
        if response.is_success:
            return
        try:
            body = response.json()
        except ValueError:
            body = None
        detail = body.get("detail") if isinstance(body, dict) else response.text
        raise BackendError(
            f"Backend returned {response.status_code}: {detail}",
            kind=ErrorKind.BACKEND_REJECTED,
        )

    def authenticate(self, address: str, signature: str) -> str:
        response = self._send(
            "POST",
            "/api/authentication",
            params={"accountAddress": address},
            json={"signature": signature},
        )
        self._raise_for_status(response)
        return response.json()["token"]

    def upload_image(
        self,
        role: ImageRole,
        content: bytes,
        token: str,
        filename: str = "image.png",
        content_type: str = "image/png",
    ) -> str:
        """Upload a profile image and return its IPFS gateway URL."""
        try:
            response = self._send(
                "POST",
                UPLOAD_ENDPOINTS[role],
                files={"file": (filename, content, content_type)},
                headers={"x-access-token": token},
            )
            self._raise_for_status(response)
        except BackendError as e:
            raise ImageUploadError(str(e)) from e

        data = response.json()
        if data.get("message") != "successful" or not data.get("ipfsUrl"):
            raise ImageUploadError(f"Unexpected upload response: {data}")
        return data["ipfsUrl"]

    def get_image_url(self, role: ImageRole, address: str, validate: bool = True) -> Optional[str]:
        """
        IPFS URL of the image uploaded for an address, or None.
        With ``validate`` the URL must answer a HEAD request with an image content type.
        """
        if not address:
            return None
        try:
            response = self._send("GET", f"{LOOKUP_ENDPOINTS[role]}/{address}")
        except BackendError:
            return None
        if response.status_code != 200:
            logger.info(f"No {role.value} image found for address: {address}")
            return None

        ipfs_url = response.json().get("ipfsUrl")
        if not ipfs_url:
            return None
        if validate and not self.is_image_url(ipfs_url):
            logger.info(f"{role.value} image URL is not valid or accessible: {ipfs_url}")
            return None
        return ipfs_url

    def is_image_url(self, url: str) -> bool:
        try:
            response = self._client.head(url, follow_redirects=True)
        except httpx.HTTPError as e:
            logger.error(f"Error validating image URL: {e}")
            return False
        return response.headers.get("content-type", "").startswith("image/")

    def database_stats(self, token: str) -> Dict[str, int]:
        response = self._send(
            "GET", "/api/admin/database-stats", headers={"Authorization": f"Bearer {token}"}
        )
        self._raise_for_status(response)
        return response.json()["stats"]

    def reset_database(self, token: str) -> Dict[str, int]:
        response = self._send(
            "POST", "/api/admin/reset-database", headers={"Authorization": f"Bearer {token}"}
        )
        self._raise_for_status(response)
        return response.json()["deleted"]

    def close(self) -> None:
        self._client.close()
