"""
Headless PIN entry pad.

Models the login form: one single-digit cell per PIN digit, focus that
advances as digits are typed, automatic submission once every cell is filled,
and a lockout display that re-enables itself by polling the server.

    checking -> authenticated                  (no PIN configured)
    checking -> collecting | locked
    collecting -> submitting -> authenticated | collecting | locked
    locked -> collecting                       (poll reports lockout over)
"""

from __future__ import annotations

import asyncio
from enum import Enum
from typing import Awaitable, Callable, List, Optional

from pintodo.client.api import PinTodoClient, TransportError
from pintodo.security.logger import app_logger

logger = app_logger.getChild("client")

POLL_INTERVAL_SECONDS = 10.0


class PadState(str, Enum):
    CHECKING = "checking"
    COLLECTING = "collecting"
    SUBMITTING = "submitting"
    LOCKED = "locked"
    AUTHENTICATED = "authenticated"


def lockout_message(minutes: int) -> str:
    return f"Too many attempts. Please try again in {minutes} minute{'' if minutes == 1 else 's'}."


def attempts_message(attempts_left: int) -> str:
    return f"{attempts_left} attempt{'' if attempts_left == 1 else 's'} remaining"


class PinPad:
    def __init__(
        self,
        api: PinTodoClient,
        *,
        poll_interval: float = POLL_INTERVAL_SECONDS,
        max_attempts: int = 5,
        on_authenticated: Optional[Callable[[], Awaitable[None]]] = None,
    ) -> None:
        self.api = api
        self.poll_interval = poll_interval
        self.max_attempts = max_attempts
        self.on_authenticated = on_authenticated

        self.state = PadState.CHECKING
        self.cells: List[str] = []
        self.focus = 0
        self.disabled = False
        self.error: Optional[str] = None
        self.attempts_notice: Optional[str] = None
        self.lockout_notice: Optional[str] = None
        self._poll_task: Optional[asyncio.Task] = None

    # ------------------------
    # Derived state
    # ------------------------

    @property
    def busy(self) -> bool:
        return self.state is PadState.SUBMITTING

    @property
    def complete(self) -> bool:
        return bool(self.cells) and all(self.cells)

    @property
    def polling(self) -> bool:
        return self._poll_task is not None and not self._poll_task.done()

    # ------------------------
    # Lifecycle
    # ------------------------

    async def start(self) -> PadState:
        self.state = PadState.CHECKING
        try:
            status = await self.api.pin_status()
        except TransportError as exc:
            logger.error(f"Failed to check PIN status: {exc}")
            self.error = "Failed to initialize PIN inputs"
            return self.state

        if not status.required:
            await self._authenticated()
            return self.state

        self.cells = [""] * status.length
        self.focus = 0
        if status.locked:
            self._lock(status.lockoutMinutes)
        else:
            self.state = PadState.COLLECTING
            if status.attemptsLeft < self.max_attempts:
                self.attempts_notice = attempts_message(status.attemptsLeft)
        return self.state

    async def close(self) -> None:
        await self._stop_polling()

    # ------------------------
    # Input
    # ------------------------

    def _accepting_input(self) -> bool:
        return self.state is PadState.COLLECTING and not self.disabled

    def focus_cell(self, index: int) -> None:
        if self._accepting_input() and 0 <= index < len(self.cells):
            self.focus = index

    async def type_key(self, key: str) -> bool:
        """Feed one key press to the focused cell. Non-digits are rejected."""
        if not self._accepting_input():
            return False
        if len(key) != 1 or not key.isdigit():
            return False

        self.cells[self.focus] = key
        if self.focus < len(self.cells) - 1:
            self.focus += 1
        if self.complete:
            await self.submit()
        return True

    def backspace(self) -> bool:
        if not self._accepting_input():
            return False
        if self.cells[self.focus]:
            self.cells[self.focus] = ""
            return True
        if self.focus > 0:
            self.focus -= 1
            self.cells[self.focus] = ""
            return True
        return False

    # ------------------------
    # Submission
    # ------------------------

    async def submit(self) -> Optional[bool]:
        """Send the entered PIN. Returns None when nothing was sent."""
        if not self._accepting_input() or not self.complete:
            return None

        pin = "".join(self.cells)
        self.state = PadState.SUBMITTING
        try:
            result = await self.api.verify_pin(pin)
        except TransportError as exc:
            logger.error(f"Failed to verify PIN: {exc}")
            self._reject("Failed to verify PIN")
            return False

        if result.valid:
            await self._authenticated()
            return True
        if result.locked:
            self._clear_cells()
            self._lock(result.lockout_minutes)
            return False
        self._reject(result.error, result.attempts_left)
        return False

    def _clear_cells(self) -> None:
        self.cells = [""] * len(self.cells)
        self.focus = 0

    def _clear_notices(self) -> None:
        self.error = None
        self.attempts_notice = None
        self.lockout_notice = None

    def _reject(self, message: Optional[str], attempts_left: Optional[int] = None) -> None:
        self._clear_cells()
        self._clear_notices()
        self.error = message
        if attempts_left is not None:
            self.attempts_notice = attempts_message(attempts_left)
        self.state = PadState.COLLECTING

    def _lock(self, minutes: int) -> None:
        self._clear_notices()
        self.lockout_notice = lockout_message(minutes)
        self.disabled = True
        self.state = PadState.LOCKED
        if not self.polling:
            self._poll_task = asyncio.create_task(self._poll_status())

    def _unlock(self) -> None:
        self._clear_cells()
        self._clear_notices()
        self.disabled = False
        self.state = PadState.COLLECTING

    async def _authenticated(self) -> None:
        self._clear_cells()
        self._clear_notices()
        self.disabled = False
        self.state = PadState.AUTHENTICATED
        await self._stop_polling()
        if self.on_authenticated is not None:
            await self.on_authenticated()

    # ------------------------
    # Lockout polling
    # ------------------------

    async def _poll_status(self) -> None:
        while self.state is PadState.LOCKED:
            await asyncio.sleep(self.poll_interval)
            try:
                status = await self.api.pin_status()
            except TransportError as exc:
                logger.warning(f"PIN status poll failed: {exc}")
                continue
            if not status.required:
                self._poll_task = None
                await self._authenticated()
                return
            if status.locked:
                self.lockout_notice = lockout_message(status.lockoutMinutes)
            else:
                self._unlock()
        self._poll_task = None

    async def _stop_polling(self) -> None:
        task = self._poll_task
        self._poll_task = None
        if task is None or task is asyncio.current_task():
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass


__all__ = ["PadState", "PinPad", "attempts_message", "lockout_message"]
