"""
Custodian API value transfer.

Moves value through a custodian's REST API:

    POST {base_url}/transfers/in   {"account", "amount", "reference"}
    POST {base_url}/transfers/out  {"account", "amount", "reference"}
    GET  {base_url}/custody        -> {"held": "<amount>"}

Amounts travel as decimal strings. Any non-2xx answer or transport
failure is reported as TransferError; the custodian is expected to treat
each call atomically.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from remitlock.core.exceptions import TransferError
from remitlock.core.logging import get_logger
from remitlock.transfer.base import ValueTransferPort

if TYPE_CHECKING:
    import httpx


class HttpValueTransfer(ValueTransferPort):
    """Value transfer backed by a custodian HTTP API."""

    def __init__(
        self,
        base_url: str,
        api_key: str | None = None,
        timeout: float = 30.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        """
        Initialize the adapter.

        Args:
            base_url: Custodian API root
            api_key: Bearer token sent with every request
            timeout: Request timeout in seconds
            client: Pre-built httpx client (tests pass one with a MockTransport)
        """
        self._base_url = base_url.rstrip("/")
        self._api_key = api_key
        self._timeout = timeout
        self._http_client = client
        self._logger = get_logger("transfer.http")

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._http_client is None:
            import httpx

            headers = {"Authorization": f"Bearer {self._api_key}"} if self._api_key else {}
            self._http_client = httpx.AsyncClient(timeout=self._timeout, headers=headers)
        return self._http_client

    async def close(self) -> None:
        """Close HTTP client."""
        if self._http_client:
            await self._http_client.aclose()
            self._http_client = None

    async def _request(
        self,
        method: str,
        path: str,
        body: dict[str, Any] | None = None,
        account: str | None = None,
        amount: int | None = None,
    ) -> dict[str, Any]:
        import httpx

        client = await self._get_client()
        url = f"{self._base_url}{path}"
        self._logger.debug(f"{method} {url}")
        try:
            response = await client.request(method, url, json=body)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise TransferError(
                f"Custodian rejected {path}",
                account=account,
                amount=amount,
                status_code=e.response.status_code,
                details={"response": e.response.text[:200]},
            ) from e
        except httpx.HTTPError as e:
            raise TransferError(
                f"Custodian unreachable: {e}",
                account=account,
                amount=amount,
            ) from e
        return response.json() if response.content else {}

    async def transfer_in(self, source: str, amount: int, reference: str | None = None) -> None:
        await self._request(
            "POST",
            "/transfers/in",
            {"account": source, "amount": str(amount), "reference": reference},
            account=source,
            amount=amount,
        )

    async def transfer_out(self, destination: str, amount: int, reference: str | None = None) -> None:
        await self._request(
            "POST",
            "/transfers/out",
            {"account": destination, "amount": str(amount), "reference": reference},
            account=destination,
            amount=amount,
        )

    async def held(self) -> int | None:
        """Value in custody, or None if the custodian does not report it."""
        try:
            data = await self._request("GET", "/custody")
        except TransferError as e:
            if e.status_code == 404:
                return None
            raise
        if "held" not in data:
            return None
        return int(data["held"])
