"""Client for the Pinata pinning API"""

import json
import logging
import httpx
from typing import Optional, Dict, Any

from sinag_admin.config import MAX_UPLOAD_BYTES, UploadConfig
from sinag_admin.errors import SinagError

logger = logging.getLogger(__name__)


class UploadError(SinagError):
    """Raised when a media upload is rejected, carrying the HTTP status to report."""

    kind = "upload"

    def __init__(self, message: str, status_code: int = 400):
        super().__init__(message)
        self.status_code = status_code


class PinataClient:
    """Proxies image uploads to IPFS so the pinning credential stays server-side"""

    def __init__(
        self,
        config: UploadConfig,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        self.config = config
        self.transport = transport
        self.client = None

    def _new_client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=self.config.timeout, transport=self.transport)

    async def __aenter__(self):
        """Async context manager entry"""
        self.client = self._new_client()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Async context manager exit"""
        if self.client:
            await self.client.aclose()
            self.client = None

    def status(self) -> Dict[str, Any]:
        """Report whether uploads are configured, and the gateway used for URLs"""
        return {"configured": self.config.configured, "gateway": self.config.gateway}

    def gateway_url(self, ipfs_hash: str) -> str:
        gateway = self.config.gateway
        if not gateway.endswith("/"):
            gateway += "/"
        return f"{gateway}{ipfs_hash}"

    async def upload_image(
        self,
        filename: Optional[str],
        content: Optional[bytes],
        content_type: Optional[str]
    ) -> Dict[str, Any]:
        """Pin one image file and return its content hash and gateway URL.

        Args:
            filename: Original file name, sent as pin metadata
            content: Raw file bytes
            content_type: MIME type declared by the uploader

        Returns:
            ``{"success": True, "ipfsHash": ..., "ipfsUrl": ...}``
        """
        if not self.config.configured:
            logger.error("Upload requested but PINATA_JWT is not set")
            raise UploadError("IPFS upload service is not configured", status_code=500)
        if not filename or content is None:
            raise UploadError("No file provided")
        if not (content_type or "").startswith("image/"):
            raise UploadError("File must be an image")
        if len(content) > MAX_UPLOAD_BYTES:
            raise UploadError(f"File size must be less than {MAX_UPLOAD_BYTES // (1024 * 1024)}MB")

        if not self.client:
            self.client = self._new_client()

        files = {"file": (filename, content, content_type)}
        data = {
            "pinataMetadata": json.dumps({"name": filename}),
            "pinataOptions": json.dumps({"cidVersion": 0}),
        }
        headers = {"Authorization": f"Bearer {self.config.jwt}"}

        try:
            response = await self.client.post(self.config.pin_url, files=files, data=data, headers=headers)
        except httpx.HTTPError as e:
            logger.error(f"Failed to reach pinning service: {e}")
            raise UploadError("Failed to upload file to IPFS", status_code=502) from e

        if response.status_code >= 400:
            message = self._error_message(response)
            logger.error(f"Pinning service rejected upload ({response.status_code}): {message}")
            raise UploadError(message, status_code=response.status_code)

        try:
            ipfs_hash = response.json()["IpfsHash"]
        except (ValueError, KeyError) as e:
            logger.error(f"Unexpected pinning service response: {response.text}")
            raise UploadError("Failed to upload file to IPFS", status_code=502) from e

        logger.info(f"Pinned {filename} as {ipfs_hash}")
        return {"success": True, "ipfsHash": ipfs_hash, "ipfsUrl": self.gateway_url(ipfs_hash)}

    @staticmethod
    def _error_message(response: httpx.Response) -> str:
        try:
            body = response.json()
        except ValueError:
            return "Failed to upload to IPFS"
        error = body.get("error") if isinstance(body, dict) else None
        if isinstance(error, dict):
            return error.get("details") or error.get("reason") or "Failed to upload to IPFS"
        if isinstance(error, str):
            return error
        return "Failed to upload to IPFS"
