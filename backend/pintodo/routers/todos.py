from typing import Any, Dict

from fastapi import APIRouter, Depends

from pintodo.models import TodoLists
from pintodo.store import TodoStore, get_store

# Access is enforced by the gate middleware in front of this router.
router = APIRouter(prefix="/api/todos", tags=["todos"])


@router.get("")
def read_todos(store: TodoStore = Depends(get_store)) -> Dict[str, Any]:
    return store.read()


@router.post("")
def save_todos(payload: TodoLists, store: TodoStore = Depends(get_store)) -> Dict[str, bool]:
    store.write(payload.model_dump())
    return {"success": True}
