"""Imgur upload-by-URL, used to turn Telegram photos into links."""
from __future__ import annotations

from typing import Optional

import httpx

from relay.errors import UploadError
from relay.observability.logging import get_logger

log = get_logger("imgur")

IMGUR_UPLOAD_URL = "https://api.imgur.com/3/image"


class ImgurClient:
    def __init__(self, client_id: str, http: Optional[httpx.AsyncClient] = None, timeout_s: float = 30.0):
        self.client_id = client_id
        self._http = http or httpx.AsyncClient(timeout=timeout_s)

    async def upload_by_url(self, source_url: str) -> str:
        """Ask Imgur to fetch ``source_url``; returns the hosted link."""
        try:
            resp = await self._http.post(
                IMGUR_UPLOAD_URL,
                data={"image": source_url},
                headers={"Authorization": f"Client-ID {self.client_id}"},
            )
            payload = resp.json()
        except (httpx.HTTPError, ValueError) as e:
            raise UploadError(f"imgur request failed: {e}") from e

        if not isinstance(payload, dict) or not payload.get("success"):
            raise UploadError("imgur API returned negative response")
        data = payload.get("data") or {}
        link = data.get("link")
        if not link:
            raise UploadError("imgur response carries no link")
        log.info("imgur_uploaded", link=link, deletion_link=f"http://imgur.com/delete/{data.get('deletehash', '')}")
        return link

    async def aclose(self) -> None:
        await self._http.aclose()
