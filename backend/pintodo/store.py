from __future__ import annotations

import json
import os
import threading
from typing import Any, Dict

from fastapi import Request

from pintodo.security.logger import app_logger as logger


class StoreError(Exception):
    """Raised when the todo file cannot be read or written."""

    def __init__(self, action: str, message: str) -> None:
        super().__init__(message)
        self.action = action


class TodoStore:
    """
    Whole-document JSON store: ``{list name: [{text, completed}, ...]}``.

    Reads return the parsed file; writes overwrite it.
    """

    def __init__(self, path: str) -> None:
        self.path = path
        self._lock = threading.Lock()

    def init(self) -> None:
        """Create the data directory and an empty document if missing."""
        directory = os.path.dirname(self.path)
        if directory:
            os.makedirs(directory, exist_ok=True)
        if not os.path.exists(self.path):
            with open(self.path, "w", encoding="utf-8") as f:
                json.dump({}, f)
        logger.info(f"Todo lists stored at: {os.path.abspath(self.path)}")

    def read(self) -> Dict[str, Any]:
        with self._lock:
            try:
                with open(self.path, "r", encoding="utf-8") as f:
                    return json.load(f)
            except FileNotFoundError:
                return {}
            except (OSError, ValueError) as exc:
                logger.error(f"Failed to read todos from {self.path}: {exc}")
                raise StoreError("read", "Failed to read todos") from exc

    def write(self, data: Dict[str, Any]) -> None:
        with self._lock:
            try:
                with open(self.path, "w", encoding="utf-8") as f:
                    json.dump(data, f, indent=2)
            except (OSError, TypeError, ValueError) as exc:
                logger.error(f"Failed to save todos to {self.path}: {exc}")
                raise StoreError("write", "Failed to save todos") from exc


def get_store(request: Request) -> TodoStore:
    return request.app.state.store


__all__ = ["StoreError", "TodoStore", "get_store"]
