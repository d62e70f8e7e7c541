from __future__ import annotations

from datetime import date, timedelta

import pytest
from pydantic import BaseModel

from db.models import DayLog, MealEntry, WeightEntry
from tools import tool_registry
from tools.base import ToolArgumentError, ToolContext, ToolSpec, UnknownToolError
from tools.registry import ToolRegistry

EXPECTED_TOOLS = {
    "weight_get_latest",
    "weight_create",
    "weight_list_recent",
    "weight_delete",
    "meals_list",
    "history_day_summaries",
    "entries_get_or_create_day_log",
    "entries_add",
    "entries_list_by_day",
    "entries_update",
    "entries_delete",
    "entries_bulkAdd",
    "entries_bulkDelete",
}


def _schema(name: str) -> dict:
    return tool_registry.get_spec(name).input_schema()


def test_catalog_lists_every_tool_once_sorted():
    names = [spec.name for spec in tool_registry.list_specs()]
    assert set(names) == EXPECTED_TOOLS
    assert names == sorted(names)


def test_described_tools_carry_object_input_schemas():
    for spec in tool_registry.list_specs():
        described = spec.describe()
        assert described["name"] == spec.name
        assert described["description"]
        schema = described["inputSchema"]
        assert schema["type"] == "object"
        assert "title" not in schema
        assert isinstance(schema["properties"], dict)
        assert isinstance(schema["required"], list)


def test_required_fields_match_tool_contracts():
    assert _schema("weight_get_latest")["required"] == []
    assert set(_schema("weight_create")["required"]) == {"entry_date", "weight_kg"}
    assert _schema("weight_list_recent")["required"] == []
    assert set(_schema("history_day_summaries")["required"]) == {"startDate", "endDate"}
    assert set(_schema("entries_add")["required"]) == {"day_log_id", "name", "protein_g", "carbs_g", "fat_g"}
    assert _schema("entries_update")["required"] == ["id"]
    assert set(_schema("entries_bulkAdd")["required"]) == {"day_log_id", "items"}
    assert _schema("entries_bulkDelete")["required"] == ["ids"]
    assert _schema("entries_get_or_create_day_log")["properties"]["date"]["format"] == "date"


def test_read_only_hint_marks_tools_that_never_write():
    hints = {spec.name: spec.describe()["annotations"]["readOnlyHint"] for spec in tool_registry.list_specs()}
    assert {name for name, read_only in hints.items() if read_only} == {
        "weight_get_latest",
        "weight_list_recent",
        "meals_list",
        "history_day_summaries",
        "entries_list_by_day",
    }


def test_registering_a_duplicate_name_fails():
    class Empty(BaseModel):
        pass

    registry = ToolRegistry()
    spec = ToolSpec(name="dup", description="x", input_model=Empty)
    registry.register(spec, lambda ctx, args: None)
    with pytest.raises(ValueError):
        registry.register(spec, lambda ctx, args: None)


def test_unknown_tool_raises(db, make_user):
    ctx = ToolContext(db=db, user_id=make_user())
    with pytest.raises(UnknownToolError):
        tool_registry.execute("weight_teleport", {}, ctx)


def test_non_object_arguments_are_rejected(db, make_user):
    ctx = ToolContext(db=db, user_id=make_user())
    with pytest.raises(ToolArgumentError):
        tool_registry.execute("weight_list_recent", ["limit", 5], ctx)


def test_missing_required_field_rejects_without_writing(db, make_user):
    user = make_user()
    day = DayLog(user_id=user, log_date=date(2024, 3, 5))
    db.add(day)
    db.commit()
    ctx = ToolContext(db=db, user_id=user)

    with pytest.raises(ToolArgumentError) as excinfo:
        tool_registry.execute("entries_add", {"day_log_id": day.id, "name": "Rice", "protein_g": 3, "carbs_g": 40}, ctx)

    assert "fat_g" in str(excinfo.value)
    assert any(err["loc"] == ("fat_g",) for err in excinfo.value.errors)
    assert db.query(MealEntry).count() == 0


@pytest.mark.parametrize(
    "args",
    [
        {"entry_date": "2024-03-01", "weight_kg": 0},
        {"entry_date": "2024-03-01", "weight_kg": "a lot"},
        {"weight_kg": 80},
    ],
)
def test_weight_create_validates_arguments(db, make_user, args):
    ctx = ToolContext(db=db, user_id=make_user())
    with pytest.raises(ToolArgumentError):
        tool_registry.execute("weight_create", args, ctx)
    assert db.query(WeightEntry).count() == 0


def test_weight_list_recent_clamps_oversized_limit(db, make_user):
    user = make_user()
    start = date(2023, 6, 1)
    db.add_all(WeightEntry(user_id=user, entry_date=start + timedelta(days=i), weight_kg=80) for i in range(205))
    db.commit()

    rows = tool_registry.execute("weight_list_recent", {"limit": 500}, ToolContext(db=db, user_id=user))
    assert len(rows) == 200
    assert rows[0]["entry_date"] == (start + timedelta(days=204)).isoformat()


def test_entries_tools_round_trip_through_registry(db, make_user):
    user = make_user()
    ctx = ToolContext(db=db, user_id=user)

    day = tool_registry.execute("entries_get_or_create_day_log", {"date": "2024-03-05"}, ctx)
    assert day["log_date"] == "2024-03-05"

    added = tool_registry.execute(
        "entries_bulkAdd",
        {
            "day_log_id": day["id"],
            "items": [
                {"name": "Oats", "protein_g": 10, "carbs_g": 50, "fat_g": 5},
                {"name": "Shake", "protein_g": 30, "carbs_g": 5, "fat_g": 2, "calories_override": 180},
            ],
        },
        ctx,
    )
    assert [row["order_index"] for row in added] == [0, 1]
    assert added[0]["total_calories"] == 10 * 4 + 50 * 4 + 5 * 9
    assert added[1]["total_calories"] == 180

    updated = tool_registry.execute("entries_update", {"id": added[1]["id"], "calories_override": None}, ctx)
    assert updated["calories_override"] is None
    assert updated["total_calories"] == 30 * 4 + 5 * 4 + 2 * 9

    listed = tool_registry.execute("entries_list_by_day", {"day_log_id": day["id"]}, ctx)
    assert [row["name"] for row in listed] == ["Oats", "Shake"]

    result = tool_registry.execute("entries_bulkDelete", {"ids": [row["id"] for row in added]}, ctx)
    assert result == {"deleted": 2}


def test_weight_delete_reports_whether_a_row_was_removed(db, make_user):
    user = make_user()
    ctx = ToolContext(db=db, user_id=user)
    created = tool_registry.execute("weight_create", {"entry_date": "2024-03-01", "weight_kg": 80.2}, ctx)
    assert tool_registry.execute("weight_get_latest", {}, ctx)["id"] == created["id"]

    assert tool_registry.execute("weight_delete", {"id": created["id"]}, ctx) == {"id": created["id"], "deleted": True}
    assert tool_registry.execute("weight_delete", {"id": created["id"]}, ctx) == {"id": created["id"], "deleted": False}
    assert tool_registry.execute("weight_get_latest", {}, ctx) is None
