#!/usr/bin/env python3
"""
Admin credential helper for the memorial site.
Prints ADMIN_USERNAME / ADMIN_PASSWORD_HASH lines for the .env file, so the
plaintext password never has to be stored there.

Usage:
    python generate_password_hash.py [--username NAME] [--rounds N]
"""
import argparse
import getpass
import sys

from app.utils.auth import hash_password, verify_password


def prompt_password() -> str:
    """Ask twice without echoing; exits on empty or mismatched input."""
    password = getpass.getpass("New admin password: ")
    if not password:
        sys.exit("Error: the admin password cannot be empty")

    if getpass.getpass("Repeat password: ") != password:
        sys.exit("Error: the two passwords differ")
    return password


def main(argv=None):
    parser = argparse.ArgumentParser(description="Generate memorial site admin credentials")
    parser.add_argument("--username", default="admin", help="admin login name (default: admin)")
    parser.add_argument("--rounds", type=int, default=12, help="bcrypt cost factor (default: 12)")
    args = parser.parse_args(argv)

    password = prompt_password()
    print(f"Hashing with bcrypt, cost {args.rounds}...")

    hashed = hash_password(password, rounds=args.rounds)
    if not verify_password(password, hashed):
        sys.exit("Error: generated hash did not verify")

    print()
    print("# memorial site admin login")
    print(f"ADMIN_USERNAME={args.username}")
    print(f"ADMIN_PASSWORD_HASH={hashed}")
    print()
    print("Leave ADMIN_PASSWORD unset, otherwise it takes precedence over the hash.")


if __name__ == "__main__":
    main()
