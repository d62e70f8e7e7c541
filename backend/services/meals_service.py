from __future__ import annotations

from typing import Any

from sqlalchemy.orm import Session

from db.models import Meal
from utils.datetime_utils import iso_or_none


def serialize_meal(row: Meal) -> dict[str, Any]:
    return {
        "id": row.id,
        "user_id": row.user_id,
        "name": row.name,
        "order_index": row.order_index,
        "archived": bool(row.archived),
        "target_protein_g": row.target_protein_g,
        "target_carbs_g": row.target_carbs_g,
        "target_fat_g": row.target_fat_g,
        "target_calories": row.target_calories,
        "created_at": iso_or_none(row.created_at),
        "updated_at": iso_or_none(row.updated_at),
    }


def list_meals_for_user(db: Session, user_id: str, include_archived: bool = False) -> list[Meal]:
    query = db.query(Meal).filter(Meal.user_id == user_id)
    if not include_archived:
        query = query.filter(Meal.archived.is_(False))
    return query.order_by(Meal.order_index.asc(), Meal.created_at.asc()).all()
