"""Operator commands for API keys.

    python cli.py init-db
    python cli.py create-user --email me@example.com
    python cli.py create-key --user-id <uuid> --name "Claude Desktop"
    python cli.py list-keys --user-id <uuid>
    python cli.py revoke-key --user-id <uuid> --key-id <uuid>
"""

from __future__ import annotations

import argparse
import json
import sys

from sqlalchemy.orm import sessionmaker

from auth.bootstrap import ensure_user
from db.database import get_session_factory, init_db
from db.models import User
from services.api_key_service import create_api_key, list_api_keys, revoke_api_key, serialize_api_key
from services.errors import InvalidArgumentError, LeanLogError


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="leanlog", description="Lean Log MCP key management")
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("init-db", help="Create database tables")

    p = sub.add_parser("create-user", help="Provision a user row")
    p.add_argument("--email", required=True)
    p.add_argument("--user-id")

    p = sub.add_parser("create-key", help="Issue an API key; the raw key is printed once")
    p.add_argument("--user-id", required=True)
    p.add_argument("--name", required=True)

    p = sub.add_parser("list-keys", help="List a user's API keys")
    p.add_argument("--user-id", required=True)

    p = sub.add_parser("revoke-key", help="Revoke an API key")
    p.add_argument("--user-id", required=True)
    p.add_argument("--key-id", required=True)
    return parser


def run(args: argparse.Namespace, session_factory: sessionmaker) -> dict | list:
    db = session_factory()
    try:
        if args.command == "create-user":
            user = ensure_user(db, user_id=args.user_id, email=args.email)
            db.commit()
            return {"id": user.id, "email": user.email}
        if args.command == "create-key":
            if db.get(User, args.user_id) is None:
                raise InvalidArgumentError(f"Unknown user: {args.user_id}")
            raw_key, row = create_api_key(db, args.user_id, args.name)
            db.commit()
            return {"key": raw_key, **serialize_api_key(row)}
        if args.command == "list-keys":
            return [serialize_api_key(row) for row in list_api_keys(db, args.user_id)]
        if args.command == "revoke-key":
            row = revoke_api_key(db, args.user_id, args.key_id)
            db.commit()
            return serialize_api_key(row)
        raise ValueError(f"Unknown command: {args.command}")
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


def main(argv: list[str] | None = None, session_factory: sessionmaker | None = None) -> int:
    args = build_parser().parse_args(argv)
    if args.command == "init-db":
        init_db()
        print(json.dumps({"status": "ok"}))
        return 0
    try:
        out = run(args, session_factory or get_session_factory())
    except LeanLogError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 1
    print(json.dumps(out, indent=2))
    return 0


if __name__ == "__main__":
    sys.exit(main())
