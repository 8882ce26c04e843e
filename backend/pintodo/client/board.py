from __future__ import annotations

from typing import Any, Dict, List, Optional

from pintodo.client.api import PinTodoClient, TransportError
from pintodo.security.logger import app_logger

logger = app_logger.getChild("client")

Item = Dict[str, Any]


class TodoBoard:
    """
    Local copy of every todo list, synced to the server by whole-document saves.

    A failed save keeps the edits in memory, marks the board dirty and sets
    ``notice`` so the UI can tell the user; the next ``save`` retries them.
    """

    def __init__(self, api: PinTodoClient) -> None:
        self.api = api
        self.lists: Dict[str, List[Item]] = {}
        self.dirty = False
        self.notice: Optional[str] = None

    async def load(self) -> bool:
        try:
            self.lists = await self.api.get_todos()
        except TransportError as exc:
            logger.error(f"Failed to load todos: {exc}")
            self.notice = "Failed to load todos"
            return False
        self.dirty = False
        self.notice = None
        return True

    async def save(self) -> bool:
        try:
            await self.api.save_todos(self.lists)
        except TransportError as exc:
            logger.error(f"Failed to save todos: {exc}")
            self.dirty = True
            self.notice = "Failed to save todos"
            return False
        self.dirty = False
        self.notice = None
        return True

    def _changed(self) -> None:
        self.dirty = True

    # ---- lists ----

    def add_list(self, name: str) -> None:
        name = name.strip()
        if not name:
            raise ValueError("list name must not be empty")
        if name in self.lists:
            raise ValueError(f"list {name!r} already exists")
        self.lists[name] = []
        self._changed()

    def rename_list(self, old: str, new: str) -> None:
        new = new.strip()
        if not new:
            raise ValueError("list name must not be empty")
        if new in self.lists and new != old:
            raise ValueError(f"list {new!r} already exists")
        # Rebuild to keep list order stable.
        self.lists = {(new if k == old else k): v for k, v in self.lists.items()}
        self._changed()

    def delete_list(self, name: str) -> None:
        del self.lists[name]
        self._changed()

    # ---- items ----

    def add(self, list_name: str, text: str) -> Item:
        text = text.strip()
        if not text:
            raise ValueError("todo text must not be empty")
        item = {"text": text, "completed": False}
        self.lists.setdefault(list_name, []).append(item)
        self._changed()
        return item

    def toggle(self, list_name: str, index: int) -> bool:
        item = self.lists[list_name][index]
        item["completed"] = not item["completed"]
        self._changed()
        return item["completed"]

    def remove(self, list_name: str, index: int) -> Item:
        item = self.lists[list_name].pop(index)
        self._changed()
        return item

    def move(self, list_name: str, src: int, dst: int) -> None:
        items = self.lists[list_name]
        item = items.pop(src)
        items.insert(dst, item)
        self._changed()

    def clear_completed(self, list_name: str) -> int:
        items = self.lists[list_name]
        kept = [i for i in items if not i["completed"]]
        cleared = len(items) - len(kept)
        if cleared:
            self.lists[list_name] = kept
            self._changed()
        return cleared


__all__ = ["TodoBoard"]
