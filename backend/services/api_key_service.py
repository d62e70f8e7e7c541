from __future__ import annotations

import logging
from typing import Any

from sqlalchemy.orm import Session

from auth.api_keys import generate_raw_key, hash_key
from db.models import ApiKey
from services.errors import ConflictError, InvalidArgumentError, NotAuthorizedError
from utils.datetime_utils import iso_or_none, utcnow

logger = logging.getLogger(__name__)


def serialize_api_key(row: ApiKey) -> dict[str, Any]:
    # hashed_key never leaves the server
    return {
        "id": row.id,
        "name": row.name,
        "created_at": iso_or_none(row.created_at),
        "last_used_at": iso_or_none(row.last_used_at),
        "revoked_at": iso_or_none(row.revoked_at),
    }


def create_api_key(db: Session, user_id: str, name: str) -> tuple[str, ApiKey]:
    """Issue a key. The raw value is returned exactly once; only its hash is stored."""
    trimmed = (name or "").strip()
    if not trimmed:
        raise InvalidArgumentError("Name is required")

    clash = (
        db.query(ApiKey.id)
        .filter(ApiKey.user_id == user_id, ApiKey.name == trimmed, ApiKey.revoked_at.is_(None))
        .first()
    )
    if clash is not None:
        raise ConflictError("A non-revoked key with this name already exists")

    raw_key = generate_raw_key()
    row = ApiKey(user_id=user_id, name=trimmed, hashed_key=hash_key(raw_key))
    db.add(row)
    db.flush()
    db.refresh(row)
    logger.info("Issued api key %s for user %s", row.id, user_id)
    return raw_key, row


def list_api_keys(db: Session, user_id: str) -> list[ApiKey]:
    return (
        db.query(ApiKey)
        .filter(ApiKey.user_id == user_id)
        .order_by(ApiKey.created_at.desc())
        .all()
    )


def revoke_api_key(db: Session, user_id: str, key_id: str) -> ApiKey:
    if not key_id:
        raise InvalidArgumentError("Key id is required")
    row = (
        db.query(ApiKey)
        .filter(ApiKey.id == key_id, ApiKey.user_id == user_id, ApiKey.revoked_at.is_(None))
        .first()
    )
    if row is None:
        raise NotAuthorizedError("Not authorized for api key")
    row.revoked_at = utcnow()
    db.flush()
    logger.info("Revoked api key %s for user %s", row.id, user_id)
    return row
