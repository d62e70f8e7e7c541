from __future__ import annotations

import math
from typing import Any

from sqlalchemy.orm import Session

from db.models import WeightEntry
from services.entries_service import normalize_log_date
from services.errors import InvalidArgumentError
from utils.datetime_utils import iso_or_none

DEFAULT_RECENT_LIMIT = 50
MAX_RECENT_LIMIT = 200


def serialize_weight_entry(row: WeightEntry) -> dict[str, Any]:
    return {
        "id": row.id,
        "user_id": row.user_id,
        "entry_date": row.entry_date.isoformat(),
        "weight_kg": row.weight_kg,
        "source": row.source,
        "created_at": iso_or_none(row.created_at),
        "updated_at": iso_or_none(row.updated_at),
    }


def clamp_recent_limit(limit: Any) -> int:
    try:
        value = int(limit)
    except (TypeError, ValueError):
        value = DEFAULT_RECENT_LIMIT
    return max(1, min(MAX_RECENT_LIMIT, value))


def get_latest_weight_entry_for_user(db: Session, user_id: str) -> WeightEntry | None:
    return (
        db.query(WeightEntry)
        .filter(WeightEntry.user_id == user_id)
        .order_by(WeightEntry.entry_date.desc(), WeightEntry.created_at.desc())
        .first()
    )


def create_weight_entry_for_user(
    db: Session,
    user_id: str,
    entry_date: Any,
    weight_kg: Any,
    source: str | None = None,
) -> WeightEntry:
    try:
        weight = float(weight_kg)
    except (TypeError, ValueError) as exc:
        raise InvalidArgumentError("`weight_kg` must be a number") from exc
    if not math.isfinite(weight) or weight <= 0:
        raise InvalidArgumentError("`weight_kg` must be a positive number")

    row = WeightEntry(
        user_id=user_id,
        entry_date=normalize_log_date(entry_date),
        weight_kg=weight,
        source=(source or "").strip() or None,
    )
    db.add(row)
    db.flush()
    db.refresh(row)
    return row


def list_recent_weight_entries_for_user(
    db: Session,
    user_id: str,
    limit: Any = DEFAULT_RECENT_LIMIT,
) -> list[WeightEntry]:
    return (
        db.query(WeightEntry)
        .filter(WeightEntry.user_id == user_id)
        .order_by(WeightEntry.entry_date.desc(), WeightEntry.created_at.desc())
        .limit(clamp_recent_limit(limit))
        .all()
    )


def delete_weight_entry_for_user(db: Session, user_id: str, entry_id: Any) -> bool:
    deleted = (
        db.query(WeightEntry)
        .filter(WeightEntry.id == str(entry_id), WeightEntry.user_id == user_id)
        .delete(synchronize_session=False)
    )
    return bool(deleted)
