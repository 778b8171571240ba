"""Operator CLI for identity accounts.

This module serves as a CLI wrapper around backend.core.identity services,
for tasks an operator runs without holding the user's ID token.
"""
from __future__ import annotations
import argparse
import logging
import sys
from pathlib import Path

SCRIPT_DIR = Path(__file__).parent
PROJECT_ROOT = SCRIPT_DIR.parent
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from backend.config import load_settings
from backend.core import audit
from backend.core.auth_facade import initialize_identity
from backend.core.identity.exceptions import IdentityError


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Identity account helper")
    parser.add_argument("--operator", default="cli",
                        help="Operator identifier for audit logs (default: cli)")
    parser.add_argument("-v", "--verbose", action="store_true")

    sub = parser.add_subparsers(dest="cmd")

    sc = sub.add_parser("create-user")
    sc.add_argument("--first", required=True)
    sc.add_argument("--last", required=True)
    sc.add_argument("--email", required=True)
    sc.add_argument("--password", required=True)

    sd = sub.add_parser("delete-user")
    sd.add_argument("--email", required=True)

    sr = sub.add_parser("send-reset")
    sr.add_argument("--email", required=True)

    sv = sub.add_parser("revoke-sessions")
    sv.add_argument("--email", required=True)

    sub.add_parser("verify-audit")
    return parser


def main(argv: list[str] | None = None) -> int:
    """Command-line entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.INFO,
                        format="%(levelname)s [%(name)s] %(message)s")

    if not args.cmd:
        parser.print_help()
        return 0

    if args.cmd == "verify-audit":
        total, valid = audit.verify_audit_log()
        print(f"Audit log: {valid}/{total} events with valid signatures")
        return 0 if total == valid else 1

    facade = initialize_identity(load_settings())
    facade.operator = args.operator

    try:
        if args.cmd == "create-user":
            uid = facade.create_user(args.first, args.last, args.email, args.password)
            print(uid)
        elif args.cmd == "delete-user":
            user = facade.users.get_user_by_email(args.email)
            facade.users.delete_user(user.uid)
            audit.safe_log_identity_event("user_deleted", user.uid, operator=args.operator,
                                          details={"email": args.email})
        elif args.cmd == "send-reset":
            facade.send_password_reset(args.email)
        elif args.cmd == "revoke-sessions":
            user = facade.users.get_user_by_email(args.email)
            facade.users.revoke_refresh_tokens(user.uid)
            audit.safe_log_identity_event("sessions_revoked", user.uid, operator=args.operator)
    except IdentityError as e:
        print(f"[{args.cmd}] Error: {e}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
