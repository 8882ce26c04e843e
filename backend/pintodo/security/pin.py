"""
PIN verification.

``verify_pin`` is the only place a submitted PIN is compared with the
configured secret. Every path that reaches the comparison (wrong length,
wrong value, correct) awaits the same randomised delay before returning, so
response latency says little about which branch was taken.
"""

from __future__ import annotations

import asyncio
import hmac
import random
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional, Tuple

from pintodo.core.settings import MAX_PIN_LENGTH, MIN_PIN_LENGTH
from pintodo.security.attempts import AttemptTracker
from pintodo.security.logger import auth_logger as logger

# Outside the PIN alphabet, so padding never turns one PIN into another.
PAD_CHAR = "\0"

_rng = random.SystemRandom()


class PinOutcome(str, Enum):
    CONFIG_ABSENT = "config_absent"
    ACCEPTED = "accepted"
    INVALID_LENGTH = "invalid_length"
    INVALID_VALUE = "invalid_value"
    LOCKED_OUT = "locked_out"


@dataclass
class PinVerification:
    outcome: PinOutcome
    attempts_left: Optional[int] = None
    lockout_minutes: int = 0

    @property
    def valid(self) -> bool:
        return self.outcome in (PinOutcome.ACCEPTED, PinOutcome.CONFIG_ABSENT)

    @property
    def locked(self) -> bool:
        return self.lockout_minutes > 0

    @property
    def status_code(self) -> int:
        if self.valid:
            return 200
        if self.locked:
            return 429
        return 401

    def error_message(self) -> Optional[str]:
        if self.valid:
            return None
        if self.locked:
            return f"Too many attempts. Please try again in {self.lockout_minutes} minutes."
        if self.outcome is PinOutcome.INVALID_LENGTH:
            return f"PIN must be between {MIN_PIN_LENGTH} and {MAX_PIN_LENGTH} digits"
        return f"Invalid PIN. {self.attempts_left} attempts remaining before lockout."

    def to_payload(self) -> Dict[str, Any]:
        if self.valid:
            return {"valid": True}
        body: Dict[str, Any] = {"valid": False, "error": self.error_message()}
        if self.attempts_left is not None:
            body["attemptsLeft"] = self.attempts_left
        if self.locked:
            body["locked"] = True
            body["lockoutMinutes"] = self.lockout_minutes
        return body


def secure_compare(provided: Any, secret: Any) -> bool:
    """
    Fixed-time comparison of two PIN strings.

    Both sides are padded to ``MAX_PIN_LENGTH`` before comparing and the length
    check is folded in without short-circuiting.
    """
    if not isinstance(provided, str) or not isinstance(secret, str):
        return False
    a = provided.ljust(MAX_PIN_LENGTH, PAD_CHAR).encode("utf-8")
    b = secret.ljust(MAX_PIN_LENGTH, PAD_CHAR).encode("utf-8")
    return hmac.compare_digest(a, b) & (len(provided) == len(secret))


def valid_length(pin: Any) -> bool:
    return isinstance(pin, str) and MIN_PIN_LENGTH <= len(pin) <= MAX_PIN_LENGTH


async def jitter_delay(delay_ms: Tuple[int, int]) -> None:
    low, high = delay_ms
    await asyncio.sleep(_rng.uniform(low, high) / 1000.0)


async def verify_pin(
    pin: Any,
    secret: Optional[str],
    tracker: AttemptTracker,
    client_id: str,
    delay_ms: Tuple[int, int] = (50, 100),
) -> PinVerification:
    if secret is None:
        return PinVerification(PinOutcome.CONFIG_ABSENT)

    # Lockout check and attempt count happen together, before the only await,
    # so a burst from one client cannot all slip past the same check.
    lockout_minutes, reservation = tracker.begin_attempt(client_id)
    if lockout_minutes:
        return PinVerification(PinOutcome.LOCKED_OUT, attempts_left=0, lockout_minutes=lockout_minutes)

    if not valid_length(pin):
        outcome = PinOutcome.INVALID_LENGTH
    elif secure_compare(pin, secret):
        outcome = PinOutcome.ACCEPTED
    else:
        outcome = PinOutcome.INVALID_VALUE

    await jitter_delay(delay_ms)

    if outcome is PinOutcome.ACCEPTED:
        lockout_minutes = tracker.settle_success(client_id, reservation)
        if lockout_minutes:
            logger.warning(f"Correct PIN from IP {client_id} refused: locked out by concurrent attempts")
            return PinVerification(PinOutcome.LOCKED_OUT, attempts_left=0, lockout_minutes=lockout_minutes)
        logger.info(f"PIN verified for IP {client_id}")
        return PinVerification(outcome)

    attempts_left = max(0, tracker.max_attempts - reservation.count)
    logger.warning(
        f"Failed PIN attempt from IP {client_id} ({outcome.value}, {reservation.count}/{tracker.max_attempts}) PIN:[REDACTED]"
    )
    return PinVerification(
        outcome,
        attempts_left=attempts_left,
        lockout_minutes=tracker.is_locked_out(client_id),
    )


__all__ = [
    "PinOutcome",
    "PinVerification",
    "jitter_delay",
    "secure_compare",
    "valid_length",
    "verify_pin",
]
