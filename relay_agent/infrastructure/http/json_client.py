# relay_agent/infrastructure/http/json_client.py
import logging
from typing import Any, Optional

import httpx

from relay_agent.domain.errors import FetchError, SendError

logger = logging.getLogger(__name__)


class JsonHttpClient:
    """Thin JSON GET/POST wrapper translating httpx failures into agent errors."""

    def __init__(self, client: httpx.AsyncClient):
        self.client = client

    async def get_json(self, url: str, source: str, params: Optional[dict] = None) -> Any:
        try:
            resp = await self.client.get(url, params=params)
            resp.raise_for_status()
        except httpx.HTTPStatusError as exc:
            raise FetchError(
                source, f"unexpected http GET status {exc.response.status_code} from {url}"
            ) from exc
        except httpx.RequestError as exc:
            raise FetchError(source, f"cannot fetch URL {url}: {exc!r}") from exc

        try:
            return resp.json()
        except ValueError as exc:
            raise FetchError(source, f"cannot decode JSON from {url}: {exc}") from exc

    async def post_json(self, url: str, payload: dict, relay_id: Optional[int] = None) -> None:
        logger.debug(f"POST: {url} BODY: {payload}")
        try:
            resp = await self.client.post(url, json=payload)
            resp.raise_for_status()
        except httpx.HTTPStatusError as exc:
            raise SendError(
                relay_id,
                f"unexpected http POST status {exc.response.status_code} {exc.response.text}",
            ) from exc
        except httpx.RequestError as exc:
            raise SendError(relay_id, f"request error while posting to {url}: {exc!r}") from exc


def build_http_client(timeout: float) -> httpx.AsyncClient:
    return httpx.AsyncClient(timeout=httpx.Timeout(timeout))
