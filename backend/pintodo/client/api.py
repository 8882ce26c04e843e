from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Optional

import httpx

from pintodo.models import PinStatus, TodoLists
from pintodo.security.sessions import PIN_HEADER_NAME


class TransportError(Exception):
    """Network failure or server-side error talking to the todo server."""


class Unauthorized(TransportError):
    """The server refused the request because no valid trust token was sent."""


@dataclass
class VerifyResult:
    valid: bool
    error: Optional[str] = None
    attempts_left: Optional[int] = None
    locked: bool = False
    lockout_minutes: int = 0

    @classmethod
    def from_payload(cls, body: Dict[str, Any]) -> "VerifyResult":
        return cls(
            valid=bool(body.get("valid")),
            error=body.get("error"),
            attempts_left=body.get("attemptsLeft"),
            locked=bool(body.get("locked", False)),
            lockout_minutes=int(body.get("lockoutMinutes") or 0),
        )


class PinTodoClient:
    """
    Async HTTP client for the todo server.

    The trust cookie set by a successful ``verify_pin`` is kept in the
    underlying ``httpx`` cookie jar. Scripts that already know the PIN can pass
    ``pin=`` to send it as the ``X-Pin`` header instead.
    """

    def __init__(
        self,
        base_url: str = "http://localhost:3000",
        *,
        pin: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        timeout: float = 10.0,
    ) -> None:
        headers = {PIN_HEADER_NAME: pin} if pin else {}
        self._client = httpx.AsyncClient(
            base_url=base_url,
            transport=transport,
            timeout=timeout,
            headers=headers,
        )

    async def __aenter__(self) -> "PinTodoClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _request(self, method: str, url: str, **kwargs) -> httpx.Response:
        try:
            response = await self._client.request(method, url, **kwargs)
        except httpx.HTTPError as exc:
            raise TransportError(f"{method} {url} failed: {exc}") from exc
        if response.status_code >= 500:
            raise TransportError(f"{method} {url} returned {response.status_code}")
        return response

    async def pin_status(self) -> PinStatus:
        response = await self._request("GET", "/api/pin-required")
        return PinStatus.model_validate(response.json())

    async def verify_pin(self, pin: str) -> VerifyResult:
        response = await self._request("POST", "/api/verify-pin", json={"pin": pin})
        return VerifyResult.from_payload(response.json())

    async def logout(self) -> None:
        await self._request("POST", "/api/logout", json={})
        self._client.cookies.clear()

    async def get_todos(self) -> Dict[str, List[Dict[str, Any]]]:
        response = await self._request("GET", "/api/todos")
        if response.status_code == 401:
            raise Unauthorized("PIN required")
        if response.status_code != 200:
            raise TransportError(f"loading todos returned {response.status_code}")
        return TodoLists.model_validate(response.json()).model_dump()

    async def save_todos(self, lists: Dict[str, List[Dict[str, Any]]]) -> None:
        response = await self._request("POST", "/api/todos", json=lists)
        if response.status_code == 401:
            raise Unauthorized("PIN required")
        if response.status_code != 200:
            raise TransportError(f"saving todos returned {response.status_code}")


__all__ = ["PinTodoClient", "TransportError", "Unauthorized", "VerifyResult"]
