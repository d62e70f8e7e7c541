from __future__ import annotations

from typing import Any
from uuid import UUID

from pydantic import BaseModel, Field

from services.entries_service import (
    add_meal_entry_for_user,
    bulk_add_meal_entries_for_user,
    bulk_delete_meal_entries_for_user,
    delete_meal_entry_for_user,
    get_or_create_day_log_for_user,
    list_meal_entries_for_day,
    serialize_day_log,
    serialize_meal_entry,
    update_meal_entry_for_user,
)
from tools.base import ToolContext, ToolSpec
from tools.registry import ToolRegistry


def _grams(description: str):
    return Field(ge=0, allow_inf_nan=False, description=description)


class DayLogArgs(BaseModel):
    date: str = Field(description="Calendar date, YYYY-MM-DD.", json_schema_extra={"format": "date"})


class DayLogRefArgs(BaseModel):
    day_log_id: UUID


class EntryItem(BaseModel):
    name: str = Field(min_length=1, description="Food or dish name.")
    protein_g: float = _grams("Protein in grams.")
    carbs_g: float = _grams("Carbohydrates in grams.")
    fat_g: float = _grams("Fat in grams.")
    meal_id: UUID | None = Field(default=None, description="Meal category id; omit for the unassigned bucket.")
    calories_override: float | None = Field(
        default=None,
        ge=0,
        allow_inf_nan=False,
        description="Explicit calories; when omitted calories are 4/4/9 kcal per gram of protein/carbs/fat.",
    )


class EntryAddArgs(EntryItem):
    day_log_id: UUID


class EntryUpdateArgs(BaseModel):
    id: UUID
    name: str | None = Field(default=None, min_length=1)
    protein_g: float | None = Field(default=None, ge=0, allow_inf_nan=False)
    carbs_g: float | None = Field(default=None, ge=0, allow_inf_nan=False)
    fat_g: float | None = Field(default=None, ge=0, allow_inf_nan=False)
    calories_override: float | None = Field(default=None, ge=0, allow_inf_nan=False)
    meal_id: UUID | None = None


class EntryRefArgs(BaseModel):
    id: UUID


class EntryBulkAddArgs(BaseModel):
    day_log_id: UUID
    items: list[EntryItem] = Field(min_length=1)


class EntryBulkDeleteArgs(BaseModel):
    ids: list[UUID]


def _tool_get_or_create_day_log(ctx: ToolContext, args: DayLogArgs) -> dict[str, Any]:
    return serialize_day_log(get_or_create_day_log_for_user(ctx.db, ctx.user_id, args.date))


def _tool_entries_add(ctx: ToolContext, args: EntryAddArgs) -> dict[str, Any]:
    row = add_meal_entry_for_user(ctx.db, ctx.user_id, args.model_dump(mode="json"))
    return serialize_meal_entry(row)


def _tool_entries_list_by_day(ctx: ToolContext, args: DayLogRefArgs) -> list[dict[str, Any]]:
    rows = list_meal_entries_for_day(ctx.db, ctx.user_id, args.day_log_id)
    return [serialize_meal_entry(row) for row in rows]


def _tool_entries_update(ctx: ToolContext, args: EntryUpdateArgs) -> dict[str, Any]:
    # Only fields the caller sent are applied; an explicit null clears meal_id/calories_override.
    updates = args.model_dump(mode="json", exclude_unset=True, exclude={"id"})
    row = update_meal_entry_for_user(ctx.db, ctx.user_id, args.id, updates)
    return serialize_meal_entry(row)


def _tool_entries_delete(ctx: ToolContext, args: EntryRefArgs) -> dict[str, Any]:
    delete_meal_entry_for_user(ctx.db, ctx.user_id, args.id)
    return {"id": str(args.id), "deleted": True}


def _tool_entries_bulk_add(ctx: ToolContext, args: EntryBulkAddArgs) -> list[dict[str, Any]]:
    items = [item.model_dump(mode="json") for item in args.items]
    rows = bulk_add_meal_entries_for_user(ctx.db, ctx.user_id, args.day_log_id, items)
    return [serialize_meal_entry(row) for row in rows]


def _tool_entries_bulk_delete(ctx: ToolContext, args: EntryBulkDeleteArgs) -> dict[str, Any]:
    deleted = bulk_delete_meal_entries_for_user(ctx.db, ctx.user_id, args.ids)
    return {"deleted": deleted}


def register_entry_tools(registry: ToolRegistry) -> None:
    registry.register(
        ToolSpec(
            name="entries_get_or_create_day_log",
            description="Get the day log for a date, creating it if it does not exist yet.",
            input_model=DayLogArgs,
            read_only=False,
        ),
        _tool_get_or_create_day_log,
    )
    registry.register(
        ToolSpec(
            name="entries_add",
            description="Add a food entry with macros to a day log, optionally under a meal category.",
            input_model=EntryAddArgs,
            read_only=False,
        ),
        _tool_entries_add,
    )
    registry.register(
        ToolSpec(
            name="entries_list_by_day",
            description="List the entries of a day log, grouped by meal category in display order.",
            input_model=DayLogRefArgs,
        ),
        _tool_entries_list_by_day,
    )
    registry.register(
        ToolSpec(
            name="entries_update",
            description="Update fields of an existing entry. Only the fields provided are changed.",
            input_model=EntryUpdateArgs,
            read_only=False,
        ),
        _tool_entries_update,
    )
    registry.register(
        ToolSpec(
            name="entries_delete",
            description="Delete one entry by id.",
            input_model=EntryRefArgs,
            read_only=False,
        ),
        _tool_entries_delete,
    )
    registry.register(
        ToolSpec(
            name="entries_bulkAdd",
            description="Add several entries to one day log in a single call.",
            input_model=EntryBulkAddArgs,
            read_only=False,
        ),
        _tool_entries_bulk_add,
    )
    registry.register(
        ToolSpec(
            name="entries_bulkDelete",
            description="Delete several entries by id. Fails without deleting anything if any entry is not the user's.",
            input_model=EntryBulkDeleteArgs,
            read_only=False,
        ),
        _tool_entries_bulk_delete,
    )
