from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, RootModel


class PinRequest(BaseModel):
    # Left untyped so non-string values reach the verifier and are rejected there.
    pin: Optional[Any] = None


class PinStatus(BaseModel):
    required: bool
    length: int
    locked: bool
    attemptsLeft: int
    lockoutMinutes: int


class TodoItem(BaseModel):
    text: str = Field(max_length=1000)
    completed: bool = False


class TodoLists(RootModel[Dict[str, List[TodoItem]]]):
    pass
