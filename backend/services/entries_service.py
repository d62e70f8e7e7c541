"""Day logs and meal entries, scoped to the authenticated user.

A meal entry has no user_id of its own; it is owned through its day log.
Every entry-level read or write resolves that chain first and reports a
missing row and a foreign row the same way.
"""

from __future__ import annotations

import logging
import math
from datetime import date
from typing import Any

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from config import settings
from db.models import DayLog, Meal, MealEntry
from services.errors import ConflictError, InvalidArgumentError, InvalidDateError, NotAuthorizedError
from utils.datetime_utils import parse_calendar_date

logger = logging.getLogger(__name__)

MACRO_FIELDS = ("protein_g", "carbs_g", "fat_g")
ENTRY_UPDATABLE_FIELDS = frozenset({"name", "protein_g", "carbs_g", "fat_g", "calories_override", "meal_id"})


def serialize_day_log(row: DayLog) -> dict[str, Any]:
    return {
        "id": row.id,
        "user_id": row.user_id,
        "log_date": row.log_date.isoformat(),
        "target_calories_override": row.target_calories_override,
        "notes": row.notes,
    }


def serialize_meal_entry(row: MealEntry) -> dict[str, Any]:
    return {
        "id": row.id,
        "day_log_id": row.day_log_id,
        "meal_id": row.meal_id,
        "name": row.name,
        "protein_g": row.protein_g,
        "carbs_g": row.carbs_g,
        "fat_g": row.fat_g,
        "calories_override": row.calories_override,
        "total_calories": row.total_calories,
        "order_index": row.order_index,
    }


def normalize_log_date(value: Any) -> date:
    try:
        return parse_calendar_date(value)
    except ValueError as exc:
        raise InvalidDateError(f"Invalid date: {value!r}") from exc


def _clean_name(value: Any) -> str:
    name = value.strip() if isinstance(value, str) else ""
    if not name:
        raise InvalidArgumentError("Name cannot be empty")
    return name


def _clean_non_negative(value: Any, field: str) -> float:
    if isinstance(value, bool):
        raise InvalidArgumentError(f"`{field}` must be a number")
    try:
        number = float(value)
    except (TypeError, ValueError) as exc:
        raise InvalidArgumentError(f"`{field}` must be a number") from exc
    if not math.isfinite(number) or number < 0:
        raise InvalidArgumentError(f"`{field}` must be a non-negative number")
    return number


def _clean_calories_override(value: Any) -> float | None:
    if value is None:
        return None
    return _clean_non_negative(value, "calories_override")


def _normalize_meal_id(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _clean_entry_payload(payload: dict[str, Any]) -> dict[str, Any]:
    return {
        "meal_id": _normalize_meal_id(payload.get("meal_id")),
        "name": _clean_name(payload.get("name")),
        **{key: _clean_non_negative(payload.get(key), key) for key in MACRO_FIELDS},
        "calories_override": _clean_calories_override(payload.get("calories_override")),
    }


def _require_owned_day_log(db: Session, user_id: str, day_log_id: Any) -> DayLog:
    row = (
        db.query(DayLog)
        .filter(DayLog.id == str(day_log_id), DayLog.user_id == user_id)
        .first()
    )
    if row is None:
        raise NotAuthorizedError("Not authorized for day log")
    return row


def _require_owned_meal(db: Session, user_id: str, meal_id: str | None) -> None:
    if meal_id is None:
        return
    owns = db.query(Meal.id).filter(Meal.id == meal_id, Meal.user_id == user_id).first()
    if owns is None:
        raise NotAuthorizedError("Not authorized for meal")


def _require_owned_entry(db: Session, user_id: str, entry_id: Any) -> MealEntry:
    entry = db.query(MealEntry).filter(MealEntry.id == str(entry_id)).first()
    if entry is None:
        logger.debug("Meal entry %s not found", entry_id)
        raise NotAuthorizedError("Not authorized for entry")
    owns = (
        db.query(DayLog.id)
        .filter(DayLog.id == entry.day_log_id, DayLog.user_id == user_id)
        .first()
    )
    if owns is None:
        raise NotAuthorizedError("Not authorized for entry")
    return entry


def _next_order_index(db: Session, day_log_id: str, meal_id: str | None) -> int:
    group = MealEntry.meal_id.is_(None) if meal_id is None else MealEntry.meal_id == meal_id
    current = (
        db.query(func.max(MealEntry.order_index))
        .filter(MealEntry.day_log_id == day_log_id, group)
        .scalar()
    )
    return 0 if current is None else int(current) + 1


def _find_day_log(db: Session, user_id: str, log_date: date) -> DayLog | None:
    return (
        db.query(DayLog)
        .filter(DayLog.user_id == user_id, DayLog.log_date == log_date)
        .first()
    )


def get_or_create_day_log_for_user(db: Session, user_id: str, value: Any) -> DayLog:
    """Return the user's day log for a calendar date, inserting it if needed.

    Commits the insert so a concurrent request for the same date sees the
    unique violation; the loser rolls back and re-reads the winner's row.
    """
    log_date = normalize_log_date(value)
    attempts = max(int(settings.DAY_LOG_CREATE_ATTEMPTS), 1)
    for attempt in range(1, attempts + 1):
        existing = _find_day_log(db, user_id, log_date)
        if existing is not None:
            return existing

        row = DayLog(user_id=user_id, log_date=log_date)
        db.add(row)
        try:
            db.commit()
        except IntegrityError:
            db.rollback()
            logger.info(
                "Day log insert for %s lost a race (attempt %d/%d)",
                log_date.isoformat(), attempt, attempts,
            )
            continue
        db.refresh(row)
        return row
    raise ConflictError(f"Could not create day log for {log_date.isoformat()}")


def add_meal_entry_for_user(db: Session, user_id: str, payload: dict[str, Any]) -> MealEntry:
    cleaned = _clean_entry_payload(payload)
    day_log_id = str(payload.get("day_log_id") or "")
    attempts = max(int(settings.ENTRY_INSERT_ATTEMPTS), 1)

    for attempt in range(1, attempts + 1):
        _require_owned_day_log(db, user_id, day_log_id)
        _require_owned_meal(db, user_id, cleaned["meal_id"])

        row = MealEntry(
            day_log_id=day_log_id,
            order_index=_next_order_index(db, day_log_id, cleaned["meal_id"]),
            **cleaned,
        )
        db.add(row)
        try:
            db.flush()
        except IntegrityError:
            db.rollback()
            logger.info("Order index collision on day log %s (attempt %d/%d)", day_log_id, attempt, attempts)
            continue
        db.refresh(row)
        return row
    raise ConflictError("Could not assign an order index for the new entry")


def update_meal_entry_for_user(
    db: Session,
    user_id: str,
    entry_id: Any,
    updates: dict[str, Any],
) -> MealEntry:
    unknown = set(updates) - ENTRY_UPDATABLE_FIELDS
    if unknown:
        raise InvalidArgumentError(f"Unsupported entry fields: {', '.join(sorted(unknown))}")

    entry = _require_owned_entry(db, user_id, entry_id)

    if "name" in updates:
        entry.name = _clean_name(updates["name"])
    for key in MACRO_FIELDS:
        if key in updates:
            setattr(entry, key, _clean_non_negative(updates[key], key))
    if "calories_override" in updates:
        entry.calories_override = _clean_calories_override(updates["calories_override"])
    if "meal_id" in updates:
        meal_id = _normalize_meal_id(updates["meal_id"])
        if meal_id != entry.meal_id:
            _require_owned_meal(db, user_id, meal_id)
            # Moving groups appends to the end of the target group.
            entry.order_index = _next_order_index(db, entry.day_log_id, meal_id)
            entry.meal_id = meal_id

    try:
        db.flush()
    except IntegrityError as exc:
        db.rollback()
        raise ConflictError("Entry order changed concurrently; retry the update") from exc
    db.refresh(entry)
    return entry


def delete_meal_entry_for_user(db: Session, user_id: str, entry_id: Any) -> None:
    entry = _require_owned_entry(db, user_id, entry_id)
    db.delete(entry)
    db.flush()


def bulk_add_meal_entries_for_user(
    db: Session,
    user_id: str,
    day_log_id: Any,
    items: list[dict[str, Any]],
) -> list[MealEntry]:
    if not items:
        raise InvalidArgumentError("`items` must contain at least one entry")
    cleaned = [_clean_entry_payload(item) for item in items]
    day_log_id = str(day_log_id or "")
    group_ids = list(dict.fromkeys(item["meal_id"] for item in cleaned))
    attempts = max(int(settings.ENTRY_INSERT_ATTEMPTS), 1)

    for attempt in range(1, attempts + 1):
        _require_owned_day_log(db, user_id, day_log_id)
        for meal_id in group_ids:
            _require_owned_meal(db, user_id, meal_id)

        next_by_group = {meal_id: _next_order_index(db, day_log_id, meal_id) for meal_id in group_ids}
        rows: list[MealEntry] = []
        for item in cleaned:
            order_index = next_by_group[item["meal_id"]]
            next_by_group[item["meal_id"]] = order_index + 1
            rows.append(MealEntry(day_log_id=day_log_id, order_index=order_index, **item))

        db.add_all(rows)
        try:
            db.flush()
        except IntegrityError:
            db.rollback()
            logger.info("Order index collision during bulk add on %s (attempt %d/%d)", day_log_id, attempt, attempts)
            continue
        for row in rows:
            db.refresh(row)
        return rows
    raise ConflictError("Could not assign order indexes for the new entries")


def bulk_delete_meal_entries_for_user(db: Session, user_id: str, ids: list[Any]) -> int:
    wanted = list(dict.fromkeys(str(i) for i in (ids or [])))
    if not wanted:
        return 0

    entries = db.query(MealEntry.id, MealEntry.day_log_id).filter(MealEntry.id.in_(wanted)).all()
    day_log_ids = {row.day_log_id for row in entries}
    if day_log_ids:
        owned = {
            row.id
            for row in db.query(DayLog.id).filter(DayLog.id.in_(day_log_ids), DayLog.user_id == user_id)
        }
        # All or nothing: one foreign entry rejects the whole batch.
        if not day_log_ids <= owned:
            raise NotAuthorizedError("Not authorized for one or more entries")

    found_ids = [row.id for row in entries]
    if not found_ids:
        return 0
    deleted = (
        db.query(MealEntry)
        .filter(MealEntry.id.in_(found_ids))
        .delete(synchronize_session=False)
    )
    return int(deleted or 0)


def list_meal_entries_for_day(db: Session, user_id: str, day_log_id: Any) -> list[MealEntry]:
    day_log = _require_owned_day_log(db, user_id, day_log_id)
    return (
        db.query(MealEntry)
        .filter(MealEntry.day_log_id == day_log.id)
        .order_by(MealEntry.meal_id.isnot(None), MealEntry.meal_id, MealEntry.order_index)
        .all()
    )
