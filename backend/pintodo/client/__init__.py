from pintodo.client.api import PinTodoClient, TransportError, Unauthorized, VerifyResult
from pintodo.client.board import TodoBoard
from pintodo.client.pinpad import PadState, PinPad

__all__ = [
    "PadState",
    "PinPad",
    "PinTodoClient",
    "TodoBoard",
    "TransportError",
    "Unauthorized",
    "VerifyResult",
]
