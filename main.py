#!/usr/bin/env python3
"""
SiteCMS -- operator helpers for the admin auth backend.

Usage:
  python main.py generate-secret
  python main.py hash-password
  python main.py hash-password 'correct horse battery staple'
  python main.py issue-token
  python main.py verify-token <token>

Environment variables:
  AUTH_SECRET          Signing secret for session tokens (issue-token / verify-token).
  ADMIN_PASSWORD_HASH  Put the output of hash-password here instead of ADMIN_PASSWORD.

Rotating AUTH_SECRET is the only way to log out every session at once.
"""

import argparse
import getpass
import secrets
import sys
from typing import Optional

from auth.tokens import (
    BCRYPT_MAX_PASSWORD_BYTES,
    hash_password,
    issue_session_token,
    password_too_long,
    verify_session_token,
)


def _cmd_generate_secret(args: argparse.Namespace) -> int:
    print(secrets.token_hex(32))
    return 0


def _cmd_hash_password(args: argparse.Namespace) -> int:
    password = args.password
    if password is None:
        password = getpass.getpass("Admin password: ")
        if password != getpass.getpass("Repeat: "):
            print("  [!] Passwords do not match.", file=sys.stderr)
            return 1
    if not password:
        print("  [!] Password must not be empty.", file=sys.stderr)
        return 1
    if password_too_long(password):
        print(f"  [!] Password must be at most {BCRYPT_MAX_PASSWORD_BYTES} bytes (bcrypt limit).", file=sys.stderr)
        return 1
    print(hash_password(password))
    return 0


def _cmd_issue_token(args: argparse.Namespace) -> int:
    print(issue_session_token())
    return 0


def _cmd_verify_token(args: argparse.Namespace) -> int:
    if verify_session_token(args.token):
        print("valid")
        return 0
    print("invalid")
    return 1


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="sitecms",
        description="Operator helpers for the SiteCMS admin auth backend.",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser("generate-secret", help="Print a new random AUTH_SECRET")
    p.set_defaults(func=_cmd_generate_secret)

    p = sub.add_parser("hash-password", help="Print a bcrypt hash for ADMIN_PASSWORD_HASH")
    p.add_argument("password", nargs="?", help="Password to hash (prompted if omitted)")
    p.set_defaults(func=_cmd_hash_password)

    p = sub.add_parser("issue-token", help="Print a session token signed with AUTH_SECRET")
    p.set_defaults(func=_cmd_issue_token)

    p = sub.add_parser("verify-token", help="Check a session token against AUTH_SECRET")
    p.add_argument("token")
    p.set_defaults(func=_cmd_verify_token)

    return parser


def main(argv: Optional[list[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
