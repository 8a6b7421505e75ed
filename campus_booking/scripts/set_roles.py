# campus_booking/scripts/set_roles.py
"""
Add or remove role tags on a user profile.

Usage:
    python -m campus_booking.scripts.set_roles admin@example.com admin
    python -m campus_booking.scripts.set_roles prof@example.com teacher
    python -m campus_booking.scripts.set_roles user@example.com admin,teacher
    python -m campus_booking.scripts.set_roles user@example.com --remove teacher

Roles are merged with token claims on every request, so the change applies
without the user signing in again.
"""
import argparse
import sys
from typing import List, Optional

from campus_booking.config.database import SessionLocal
from campus_booking.core.exceptions import NotFoundError
from campus_booking.services.identity.identity_service import UserService


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Add or remove user role tags")
    parser.add_argument("email")
    parser.add_argument("roles", nargs="?", default="", help="Comma-separated roles to add, e.g. admin,teacher")
    parser.add_argument("--remove", metavar="ROLE", help="Remove a single role instead")

    args = parser.parse_args(argv)
    args.add = [r.strip() for r in args.roles.split(",") if r.strip()]

    if not args.remove and not args.add:
        parser.error("Provide at least one role to add, e.g. admin or teacher")
    return args


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)

    db = SessionLocal()
    try:
        profile = UserService.set_roles(db, args.email, add=args.add, remove=args.remove)
    except (NotFoundError, ValueError) as e:
        print(f"❌ {getattr(e, 'reason', e)}", file=sys.stderr)
        return 1
    finally:
        db.close()

    print(f"✅ Updated roles for {args.email} → {profile.roles}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
