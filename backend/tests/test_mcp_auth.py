from __future__ import annotations

import pytest

from auth.api_keys import generate_raw_key, hash_key
from auth.mcp_auth import authenticate_api_key, parse_bearer_token, touch_api_key_last_used
from db.models import ApiKey
from services.errors import UnauthenticatedError
from utils.datetime_utils import utcnow


def _issue_key(db, user_id: str, name: str = "agent", revoked: bool = False) -> tuple[str, ApiKey]:
    raw = generate_raw_key()
    row = ApiKey(user_id=user_id, name=name, hashed_key=hash_key(raw), revoked_at=utcnow() if revoked else None)
    db.add(row)
    db.commit()
    return raw, row


def test_parse_bearer_token_is_case_insensitive_on_scheme():
    assert parse_bearer_token("Bearer llk_abc") == "llk_abc"
    assert parse_bearer_token("bearer   llk_abc  ") == "llk_abc"
    assert parse_bearer_token("BEARER llk_abc") == "llk_abc"


@pytest.mark.parametrize("header", [None, "", "Basic dXNlcjpwYXNz", "Bearer", "Bearer    ", "llk_abc"])
def test_parse_bearer_token_rejects_missing_or_malformed_headers(header):
    with pytest.raises(UnauthenticatedError):
        parse_bearer_token(header)


def test_active_key_resolves_to_owner(db, make_user, fast_scrypt):
    alice = make_user("alice@example.com")
    bob = make_user("bob@example.com")
    _issue_key(db, alice, "alice-agent")
    raw_bob, bob_key = _issue_key(db, bob, "bob-agent")

    ctx = authenticate_api_key(db, raw_bob)
    assert ctx.user_id == bob
    assert ctx.key_id == bob_key.id


def test_revoked_key_is_rejected_even_with_correct_token(db, make_user, fast_scrypt):
    user = make_user()
    raw, _ = _issue_key(db, user, revoked=True)
    with pytest.raises(UnauthenticatedError):
        authenticate_api_key(db, raw)


def test_unknown_token_is_rejected(db, make_user, fast_scrypt):
    user = make_user()
    _issue_key(db, user)
    with pytest.raises(UnauthenticatedError):
        authenticate_api_key(db, generate_raw_key())


def test_no_active_keys_is_rejected(db):
    with pytest.raises(UnauthenticatedError):
        authenticate_api_key(db, "llk_anything")


def test_touch_last_used_sets_timestamp(session_factory, db, make_user, fast_scrypt):
    user = make_user()
    _, row = _issue_key(db, user)
    assert row.last_used_at is None

    touch_api_key_last_used(session_factory, row.id)

    db.expire_all()
    assert db.get(ApiKey, row.id).last_used_at is not None


def test_touch_last_used_logs_and_swallows_storage_failure(caplog):
    class BrokenSession:
        def query(self, *_args, **_kwargs):
            raise RuntimeError("database is locked")

        def rollback(self):
            pass

        def close(self):
            pass

    with caplog.at_level("WARNING"):
        touch_api_key_last_used(lambda: BrokenSession(), "key-1")
    assert "key-1" in caplog.text
    assert "database is locked" in caplog.text
