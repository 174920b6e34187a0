import httpx
import logging
from typing import Any, Dict, Optional

from neowatch.core.errors import RateLimited, TransportFailure

logger = logging.getLogger(__name__)


class NeoWsTransport:
    """
    Thin async client for the NASA NeoWs REST API.

    Returns decoded JSON on 2xx. Everything else becomes a TransportFailure,
    with 429 raised as RateLimited. No retries.
    """

    def __init__(self, base_url: str, api_key: str, client: Optional[httpx.AsyncClient] = None, timeout: float = 30.0):
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.client = client or httpx.AsyncClient(timeout=timeout, follow_redirects=True)

    async def get_json(self, path: str, params: Optional[Dict[str, Any]] = None) -> Any:
        query = dict(params or {})
        query["api_key"] = self.api_key
        url = f"{self.base_url}/{path.lstrip('/')}"

        try:
            resp = await self.client.get(url, params=query)
        except httpx.HTTPError as e:
            logger.error(f"NeoWs request to {path} failed: {e}")
            raise TransportFailure(f"NeoWs request failed: {e}") from e

        if resp.status_code == 429:
            logger.warning(f"NeoWs rate limited request to {path}")
            raise RateLimited()
        if not resp.is_success:
            raise TransportFailure(f"NeoWs error {resp.status_code} {resp.reason_phrase}", status_code=resp.status_code)

        try:
            return resp.json()
        except ValueError as e:
            raise TransportFailure(f"NeoWs returned invalid JSON for {path}") from e

    async def close(self):
        await self.client.aclose()
