from __future__ import annotations

import logging
from dataclasses import dataclass

from fastapi import BackgroundTasks, Depends, Header
from sqlalchemy.orm import Session, sessionmaker

from auth.api_keys import verify_key
from db.database import get_db, get_session_factory
from db.models import ApiKey
from services.errors import UnauthenticatedError
from utils.datetime_utils import utcnow

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AuthContext:
    user_id: str
    key_id: str


def parse_bearer_token(header: str | None) -> str:
    if not header:
        raise UnauthenticatedError("Missing Authorization header")
    scheme, _, token = header.strip().partition(" ")
    if scheme.lower() != "bearer":
        raise UnauthenticatedError("Missing Authorization header")
    token = token.strip()
    if not token:
        raise UnauthenticatedError("Invalid Authorization header")
    return token


def authenticate_api_key(db: Session, token: str) -> AuthContext:
    # Every active key is tried in turn: scrypt hashes are salted, so there is
    # nothing to index on. Linear in the number of active keys.
    rows = db.query(ApiKey).filter(ApiKey.revoked_at.is_(None)).all()
    for row in rows:
        if row.hashed_key and verify_key(token, row.hashed_key):
            return AuthContext(user_id=row.user_id, key_id=row.id)
    raise UnauthenticatedError("Unauthorized")


def touch_api_key_last_used(session_factory: sessionmaker, key_id: str) -> None:
    db = session_factory()
    try:
        db.query(ApiKey).filter(ApiKey.id == key_id).update(
            {ApiKey.last_used_at: utcnow()},
            synchronize_session=False,
        )
        db.commit()
    except Exception as exc:
        db.rollback()
        logger.warning("Failed to record last_used_at for api key %s: %s", key_id, exc)
    finally:
        db.close()


def get_mcp_auth_context(
    background_tasks: BackgroundTasks,
    authorization: str | None = Header(default=None),
    db: Session = Depends(get_db),
    session_factory: sessionmaker = Depends(get_session_factory),
) -> AuthContext:
    try:
        token = parse_bearer_token(authorization)
        ctx = authenticate_api_key(db, token)
    except UnauthenticatedError as exc:
        logger.warning("MCP authentication failed: %s", exc)
        raise
    # Runs after the response is sent; a failure here never reaches the caller.
    background_tasks.add_task(touch_api_key_last_used, session_factory, ctx.key_id)
    return ctx
