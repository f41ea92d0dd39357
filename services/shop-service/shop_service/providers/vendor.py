"""Shared HTTP plumbing for vendor adapters.

Every adapter owns one ``httpx.Client`` with a fixed timeout and funnels its
calls through :meth:`VendorClient._call`, which turns transport failures,
unexpected status codes and undecodable bodies into :class:`VendorError`.
"""

from __future__ import annotations

import logging
from decimal import Decimal, InvalidOperation
from typing import Any, Iterable

import httpx

from ..errors import VendorError

logger = logging.getLogger(__name__)

USER_AGENT = "shop-service/1.0"


class VendorClient:
    vendor = "vendor"

    def __init__(self, base_url: str, timeout: float, client: httpx.Client | None = None):
        self._base_url = base_url.rstrip("/")
        self._client = client or httpx.Client(timeout=timeout)

    def close(self) -> None:
        self._client.close()

    def _headers(self) -> dict[str, str]:
        return {"Content-Type": "application/json", "User-Agent": USER_AGENT}

    def _call(
        self,
        operation: str,
        method: str,
        path: str,
        *,
        expected: Iterable[int] = (200,),
        headers: dict[str, str] | None = None,
        **kwargs: Any,
    ) -> dict[str, Any]:
        url = f"{self._base_url}{path}"
        try:
            response = self._client.request(
                method,
                url,
                headers=headers if headers is not None else self._headers(),
                **kwargs,
            )
        except httpx.HTTPError as exc:
            raise self._error(operation, f"request failed: {exc}") from exc

        if response.status_code not in tuple(expected):
            raise self._error(
                operation,
                f"API error {response.status_code}: {response.text}",
                status_code=response.status_code,
            )

        try:
            payload = response.json()
        except ValueError as exc:
            raise self._error(
                operation, "response body is not valid JSON", status_code=response.status_code
            ) from exc
        if not isinstance(payload, dict):
            raise self._error(operation, "response body is not a JSON object", status_code=response.status_code)
        return payload

    def _error(self, operation: str, message: str, status_code: int | None = None) -> VendorError:
        error = VendorError(self.vendor, operation, message, status_code=status_code)
        logger.debug(
            "%s operation failed: %s",
            self.vendor,
            error,
            extra=error.log_fields(),
        )
        return error

    def _field(self, payload: dict, key: str, kind: type | tuple = str, *, operation: str) -> Any:
        value = payload.get(key)
        if not isinstance(value, kind) or isinstance(value, bool):
            raise self._error(operation, f"malformed response: field {key!r} missing or invalid")
        return value

    def _decimal(self, value: Any, *, operation: str) -> Decimal:
        try:
            return Decimal(str(value))
        except (InvalidOperation, ValueError) as exc:
            raise self._error(operation, f"malformed response: invalid amount {value!r}") from exc
