from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field

from services.history_service import get_day_summaries_for_user
from services.meals_service import list_meals_for_user, serialize_meal
from tools.base import ToolContext, ToolSpec
from tools.registry import ToolRegistry


class MealsListArgs(BaseModel):
    includeArchived: bool = Field(default=False, description="Include archived meal categories.")


class DaySummariesArgs(BaseModel):
    startDate: str = Field(description="First day, YYYY-MM-DD (inclusive).", json_schema_extra={"format": "date"})
    endDate: str = Field(description="Last day, YYYY-MM-DD (inclusive).", json_schema_extra={"format": "date"})


def _tool_meals_list(ctx: ToolContext, args: MealsListArgs) -> list[dict[str, Any]]:
    rows = list_meals_for_user(ctx.db, ctx.user_id, include_archived=args.includeArchived)
    return [serialize_meal(row) for row in rows]


def _tool_history_day_summaries(ctx: ToolContext, args: DaySummariesArgs) -> list[dict[str, Any]]:
    return get_day_summaries_for_user(ctx.db, ctx.user_id, args.startDate, args.endDate)


def register_meal_tools(registry: ToolRegistry) -> None:
    registry.register(
        ToolSpec(
            name="meals_list",
            description="List the user's meal categories (e.g. Breakfast) with macro targets, in display order.",
            input_model=MealsListArgs,
        ),
        _tool_meals_list,
    )
    registry.register(
        ToolSpec(
            name="history_day_summaries",
            description=(
                "Per-day calorie and macro totals, entry counts and calorie targets "
                "for every logged day in a date range, newest first."
            ),
            input_model=DaySummariesArgs,
        ),
        _tool_history_day_summaries,
    )
