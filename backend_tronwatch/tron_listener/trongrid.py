"""
Minimal TronGrid HTTP client: account lookup for pool discovery.

Only /wallet/getaccount is used (active_permission keys reveal which pool
controls an account). Block sync and broadcasting are not handled here.
"""

from __future__ import annotations

from typing import Any

import httpx

from backend_tronwatch.core.exceptions import TronGridError
from backend_tronwatch.tronwatch_logging import get_logger

logger = get_logger(__name__)

TRONGRID_TIMEOUT_SEC = 15.0
API_KEY_HEADER = "TRON-PRO-API-KEY"


class TronGridClient:
    """Synchronous TronGrid client. Pass an httpx.Client to control transport (tests)."""

    def __init__(
        self,
        base_url: str,
        api_key: str = "",
        *,
        client: httpx.Client | None = None,
        timeout_sec: float = TRONGRID_TIMEOUT_SEC,
    ) -> None:
        headers = {API_KEY_HEADER: api_key} if api_key else {}
        self._client = client or httpx.Client(
            base_url=base_url.rstrip("/"), timeout=timeout_sec, headers=headers
        )
        self._owns_client = client is None

    def get_account(self, address: str) -> dict[str, Any] | None:
        """
        POST /wallet/getaccount with visible addresses.
        Returns None for unknown (empty) accounts; raises TronGridError on HTTP failure.
        """
        try:
            resp = self._client.post("/wallet/getaccount", json={"address": address, "visible": True})
            resp.raise_for_status()
            data = resp.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.debug("trongrid_get_account_failed", address=address, error=str(e))
            raise TronGridError(f"getaccount failed for {address}: {e}") from e
        if not isinstance(data, dict) or not data:
            return None
        return data

    def close(self) -> None:
        if self._owns_client:
            self._client.close()
