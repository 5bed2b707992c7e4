"""Object storage gateway for public buckets."""
from typing import Dict, Optional

import httpx

from taskboard.config import Settings, settings as default_settings
from taskboard.core.exceptions import BackendError
from taskboard.integrations.supabase import BackendMode


class StorageGateway:
    """Upload objects to a bucket and build their public URLs."""

    def __init__(self, config: Settings = default_settings):
        self.config = config
        self.mode = BackendMode(config.BACKEND_MODE.lower())
        self.base_url = config.SUPABASE_URL.rstrip("/") if config.SUPABASE_URL else "http://localhost:54321"
        self.api_key = config.SUPABASE_ANON_KEY
        self._stub_objects: Dict[str, bytes] = {}

    def public_url(self, bucket: str, path: str) -> str:
        return f"{self.base_url}/storage/v1/object/public/{bucket}/{path}"

    def stored_object(self, bucket: str, path: str) -> Optional[bytes]:
        """Bytes uploaded in stub mode, if any."""
        return self._stub_objects.get(f"{bucket}/{path}")

    async def upload(
        self,
        bucket: str,
        path: str,
        data: bytes,
        content_type: str,
        access_token: Optional[str] = None,
    ) -> str:
        """Upload ``data`` and return the object's public URL."""
        if self.mode == BackendMode.STUB:
            self._stub_objects[f"{bucket}/{path}"] = data
            return self.public_url(bucket, path)

        headers = {
            "apikey": self.api_key or "",
            "Authorization": f"Bearer {access_token or self.api_key}",
            "Content-Type": content_type,
            "x-upsert": "false",
        }
        try:
            async with httpx.AsyncClient(timeout=self.config.REQUEST_TIMEOUT) as client:
                response = await client.post(
                    f"{self.base_url}/storage/v1/object/{bucket}/{path}",
                    content=data,
                    headers=headers,
                )
                response.raise_for_status()
        except httpx.HTTPError as exc:
            status_code = exc.response.status_code if isinstance(exc, httpx.HTTPStatusError) else None
            raise BackendError(f"Error uploading file: {exc}", status_code=status_code) from exc
        return self.public_url(bucket, path)
