from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable

from pydantic import BaseModel
from sqlalchemy.orm import Session


ToolHandler = Callable[["ToolContext", BaseModel], Any]


class ToolExecutionError(Exception):
    """Raised when a tool call cannot be resolved or its arguments are rejected."""


class UnknownToolError(ToolExecutionError):
    pass


class ToolArgumentError(ToolExecutionError):
    def __init__(self, message: str, errors: list[dict[str, Any]] | None = None):
        super().__init__(message)
        self.errors = errors or []


@dataclass
class ToolContext:
    db: Session
    user_id: str
    key_id: str | None = None


@dataclass(frozen=True)
class ToolSpec:
    name: str
    description: str
    input_model: type[BaseModel]
    read_only: bool = True

    def input_schema(self) -> dict[str, Any]:
        schema = self.input_model.model_json_schema()
        schema.pop("title", None)
        schema.setdefault("properties", {})
        schema.setdefault("required", [])
        return schema

    def describe(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "description": self.description,
            "inputSchema": self.input_schema(),
            "annotations": {"readOnlyHint": self.read_only},
        }
