"""Razorpay gateway adapter over the Orders REST API."""

from __future__ import annotations

import logging
from typing import Any

import httpx

from wanderlust_billing.billing.providers.base import GatewayError, GatewayOrder, PingResult

logger = logging.getLogger(__name__)

DEFAULT_API_BASE = "https://api.razorpay.com/v1"


class RazorpayGateway:
    """Razorpay Orders API client.

    Authenticates with HTTP Basic (key id, key secret). Pass an existing
    httpx.AsyncClient to share a connection pool or to inject a transport
    in tests; otherwise a client is opened per call.
    """

    gateway_name = "razorpay"

    def __init__(
        self,
        key_id: str,
        key_secret: str,
        *,
        api_base: str = DEFAULT_API_BASE,
        timeout_seconds: float = 10.0,
        client: httpx.AsyncClient | None = None,
    ):
        self.key_id = key_id
        self._key_secret = key_secret
        self._api_base = api_base.rstrip("/")
        self._timeout = timeout_seconds
        self._client = client

    async def create_order(
        self,
        *,
        amount: int,
        currency: str,
        receipt: str,
        notes: dict[str, str],
    ) -> GatewayOrder:
        payload = {
            "amount": amount,
            "currency": currency,
            "receipt": receipt,
            "notes": notes,
        }
        data = await self._request("POST", "/orders", json=payload)
        return _order(data)

    async def fetch_order(self, order_id: str) -> GatewayOrder:
        data = await self._request("GET", f"/orders/{order_id}")
        return _order(data)

    async def ping(self) -> PingResult:
        try:
            await self._request("GET", "/orders", params={"count": 1})
        except GatewayError as e:
            return PingResult(ok=False, status=e.status_code, message=str(e))
        return PingResult(ok=True, status=200)

    async def _request(self, method: str, path: str, **kwargs: Any) -> dict[str, Any]:
        url = f"{self._api_base}{path}"
        try:
            if self._client is not None:
                response = await self._client.request(
                    method, url, auth=self._auth(), timeout=self._timeout, **kwargs
                )
            else:
                async with httpx.AsyncClient(timeout=self._timeout) as client:
                    response = await client.request(method, url, auth=self._auth(), **kwargs)
        except httpx.TimeoutException as e:
            logger.warning("Razorpay %s %s timed out", method, path)
            raise GatewayError(f"Gateway request timed out: {e}") from e
        except httpx.HTTPError as e:
            logger.warning("Razorpay %s %s failed: %s", method, path, e)
            raise GatewayError(f"Gateway request failed: {e}") from e

        try:
            data = response.json()
        except ValueError:
            data = {}

        if response.is_error:
            raise GatewayError(
                _error_description(data) or f"Gateway returned HTTP {response.status_code}",
                status_code=response.status_code,
            )
        if not isinstance(data, dict):
            raise GatewayError("Gateway returned a malformed response", response.status_code)
        return data

    def _auth(self) -> httpx.BasicAuth:
        return httpx.BasicAuth(self.key_id, self._key_secret)


def _error_description(data: Any) -> str | None:
    if isinstance(data, dict):
        error = data.get("error")
        if isinstance(error, dict) and error.get("description"):
            return str(error["description"])
    return None


def _order(data: dict[str, Any]) -> GatewayOrder:
    try:
        return GatewayOrder.from_payload(data)
    except (KeyError, TypeError, ValueError) as e:
        logger.warning("Razorpay returned an unusable order entity: %s", e)
        raise GatewayError("Gateway returned a malformed response") from e
