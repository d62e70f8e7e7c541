from __future__ import annotations

from collections import defaultdict
from typing import Any

from sqlalchemy.orm import Session

from db.models import DayLog, MealEntry, Profile
from services.entries_service import normalize_log_date
from services.errors import InvalidArgumentError
from utils.calculations import entry_calories


def _default_target_calories(db: Session, user_id: str) -> int | None:
    profile = db.query(Profile).filter(Profile.id == user_id).first()
    if profile is None:
        return None
    if profile.target_calories is not None:
        return profile.target_calories
    return profile.suggested_calories


def get_day_summaries_for_user(db: Session, user_id: str, start_date: Any, end_date: Any) -> list[dict[str, Any]]:
    """Per-day macro totals for every day log in [start_date, end_date], newest first."""
    start = normalize_log_date(start_date)
    end = normalize_log_date(end_date)
    if start > end:
        raise InvalidArgumentError("`startDate` must not be after `endDate`")

    day_logs = (
        db.query(DayLog)
        .filter(DayLog.user_id == user_id, DayLog.log_date >= start, DayLog.log_date <= end)
        .order_by(DayLog.log_date.desc())
        .all()
    )
    if not day_logs:
        return []

    entries = (
        db.query(
            MealEntry.day_log_id,
            MealEntry.protein_g,
            MealEntry.carbs_g,
            MealEntry.fat_g,
            MealEntry.calories_override,
            MealEntry.total_calories,
        )
        .filter(MealEntry.day_log_id.in_([log.id for log in day_logs]))
        .all()
    )
    by_day: dict[str, list] = defaultdict(list)
    for entry in entries:
        by_day[entry.day_log_id].append(entry)

    default_target = _default_target_calories(db, user_id)

    summaries: list[dict[str, Any]] = []
    for log in day_logs:
        day_entries = by_day.get(log.id, [])
        calories = protein = carbs = fat = 0.0
        for e in day_entries:
            if e.total_calories is not None:
                calories += e.total_calories
            else:
                calories += entry_calories(e.calories_override, e.protein_g, e.carbs_g, e.fat_g)
            protein += e.protein_g or 0
            carbs += e.carbs_g or 0
            fat += e.fat_g or 0
        summaries.append({
            "log_date": log.log_date.isoformat(),
            "total_calories": calories,
            "total_protein": protein,
            "total_carbs": carbs,
            "total_fat": fat,
            "entry_count": len(day_entries),
            "target_calories": (
                log.target_calories_override
                if log.target_calories_override is not None
                else default_target
            ),
            "notes": log.notes,
        })
    return summaries
