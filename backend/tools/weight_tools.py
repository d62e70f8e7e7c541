from __future__ import annotations

from typing import Any
from uuid import UUID

from pydantic import BaseModel, Field

from services.weight_service import (
    DEFAULT_RECENT_LIMIT,
    create_weight_entry_for_user,
    delete_weight_entry_for_user,
    get_latest_weight_entry_for_user,
    list_recent_weight_entries_for_user,
    serialize_weight_entry,
)
from tools.base import ToolContext, ToolSpec
from tools.registry import ToolRegistry


class NoArgs(BaseModel):
    pass


class WeightCreateArgs(BaseModel):
    entry_date: str = Field(description="Calendar date, YYYY-MM-DD.", json_schema_extra={"format": "date"})
    weight_kg: float = Field(gt=0, allow_inf_nan=False, description="Body weight in kilograms.")
    source: str | None = Field(default=None, description="Where the reading came from, e.g. `scale` or `mcp`.")


class WeightListRecentArgs(BaseModel):
    limit: int = Field(
        default=DEFAULT_RECENT_LIMIT,
        description="Maximum rows to return; values outside 1-200 are clamped.",
    )


class WeightDeleteArgs(BaseModel):
    id: UUID


def _tool_weight_get_latest(ctx: ToolContext, args: NoArgs) -> dict[str, Any] | None:
    row = get_latest_weight_entry_for_user(ctx.db, ctx.user_id)
    return serialize_weight_entry(row) if row is not None else None


def _tool_weight_create(ctx: ToolContext, args: WeightCreateArgs) -> dict[str, Any]:
    row = create_weight_entry_for_user(
        ctx.db,
        ctx.user_id,
        entry_date=args.entry_date,
        weight_kg=args.weight_kg,
        source=args.source,
    )
    return serialize_weight_entry(row)


def _tool_weight_list_recent(ctx: ToolContext, args: WeightListRecentArgs) -> list[dict[str, Any]]:
    rows = list_recent_weight_entries_for_user(ctx.db, ctx.user_id, limit=args.limit)
    return [serialize_weight_entry(row) for row in rows]


def _tool_weight_delete(ctx: ToolContext, args: WeightDeleteArgs) -> dict[str, Any]:
    deleted = delete_weight_entry_for_user(ctx.db, ctx.user_id, args.id)
    return {"id": str(args.id), "deleted": deleted}


def register_weight_tools(registry: ToolRegistry) -> None:
    registry.register(
        ToolSpec(
            name="weight_get_latest",
            description="Get the most recent weight entry for the user, or null if none exist.",
            input_model=NoArgs,
        ),
        _tool_weight_get_latest,
    )
    registry.register(
        ToolSpec(
            name="weight_create",
            description="Record a body weight reading for a date.",
            input_model=WeightCreateArgs,
            read_only=False,
        ),
        _tool_weight_create,
    )
    registry.register(
        ToolSpec(
            name="weight_list_recent",
            description="List recent weight entries, newest date first.",
            input_model=WeightListRecentArgs,
        ),
        _tool_weight_list_recent,
    )
    registry.register(
        ToolSpec(
            name="weight_delete",
            description="Delete one of the user's weight entries by id.",
            input_model=WeightDeleteArgs,
            read_only=False,
        ),
        _tool_weight_delete,
    )
