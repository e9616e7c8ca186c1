from __future__ import annotations

import argparse
import secrets
import sys

from .auth import create_user, get_user_by_username
from .db import init_db, new_session
from .services.connections import add_connection


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(prog="taskdeck")
    sub = parser.add_subparsers(dest="command", required=True)

    p_user = sub.add_parser("create-user", help="Create a user account.")
    p_user.add_argument("username")
    p_user.add_argument("--email", default=None)
    p_user.add_argument(
        "--password",
        default=None,
        help="Password. If omitted, a random password is generated and printed.",
    )

    p_conn = sub.add_parser("connect", help="Connect two users so they can share boards.")
    p_conn.add_argument("username")
    p_conn.add_argument("friend_username")

    args = parser.parse_args(argv)
    init_db()

    if args.command == "create-user":
        password: str = args.password or secrets.token_urlsafe(12)
        with new_session() as db:
            try:
                user = create_user(db, username=args.username, password=password, email=args.email)
            except ValueError as e:
                print(f"error: {e}", file=sys.stderr)
                sys.exit(1)
        if args.password is None:
            print(password)
        else:
            print(f"created user {user.username}")
        return

    if args.command == "connect":
        with new_session() as db:
            user = get_user_by_username(db, args.username)
            if user is None:
                print(f"error: user {args.username} not found", file=sys.stderr)
                sys.exit(1)
            result = add_connection(db, current_user=user, data={"friend_username": args.friend_username})
        if not result.ok:
            print(f"error: {result.error.message}", file=sys.stderr)
            sys.exit(1)
        print("ok")
        return

    parser.print_help()
    sys.exit(2)


if __name__ == "__main__":
    main()
