#!/usr/bin/env python3
"""
Reset a user's password in the catalogue database.

Existing passwords are never read or revealed; the script stores a new
PBKDF2 hash for the given e-mail.  The database is the one configured
through ``DATABASE_URL`` unless ``--db`` is given.

Usage:
    python reset_password.py --email admin@example.com --password "NewStrongPass!234"

If --password is omitted, you will be prompted to enter it securely.
"""

import argparse
import getpass
import os
import sys

from composition_catalog_api.app.core.config import settings
from composition_catalog_api.app.core.db import transaction
from composition_catalog_api.app.core.security import hash_password


def main() -> None:
    ap = argparse.ArgumentParser(description="Reset a catalogue user's password.")
    ap.add_argument("--db", help="Path to the SQLite database (defaults to DATABASE_URL)")
    ap.add_argument("--email", required=True, help="User email to update")
    ap.add_argument("--password", help="New password. If omitted, you'll be prompted securely.")
    args = ap.parse_args()

    if args.db:
        if not os.path.exists(args.db):
            print(f"[!] DB not found: {args.db}", file=sys.stderr)
            sys.exit(1)
        settings.database_url = os.path.abspath(args.db)

    new_password = args.password or getpass.getpass("Enter NEW password: ")
    if not new_password:
        print("[!] Empty password is not allowed.", file=sys.stderr)
        sys.exit(1)

    with transaction() as cursor:
        cursor.execute(
            "UPDATE users SET password = ? WHERE email = ?",
            (hash_password(new_password), args.email),
        )
        updated = cursor.rowcount
    if not updated:
        print(f"[!] No user found with email: {args.email}", file=sys.stderr)
        sys.exit(2)
    print(f"[+] Password updated for user: {args.email}")


if __name__ == "__main__":
    main()
