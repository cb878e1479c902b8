"""Seed tyre compounds and starter tracks, and optionally create the first admin.

Usage:
    python scripts/seed_catalog.py
    python scripts/seed_catalog.py --admin-email host@example.com --admin-password '...'
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path


PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Seed the FridayGT catalogue.")
    parser.add_argument("--skip-tracks", action="store_true", help="Only seed tyre compounds.")
    parser.add_argument("--admin-email", default=None, help="Create the first admin with this email.")
    parser.add_argument("--admin-password", default=None)
    return parser.parse_args()


def main() -> int:
    args = parse_args()

    from app import create_app
    from services.accounts import bootstrap_admin
    from services.catalog import seed_tracks, seed_tyres
    from services.errors import ApiError

    app = create_app()
    with app.app_context():
        tyres = seed_tyres()
        tracks = 0 if args.skip_tracks else seed_tracks()
        print(f"Seeded {tyres} tyre compounds and {tracks} tracks.")

        if args.admin_email:
            try:
                admin = bootstrap_admin(args.admin_email, args.admin_password or "")
            except ApiError as exc:
                print(f"Admin not created: {exc.message}", file=sys.stderr)
                return 1
            print(f"Admin ready: {admin.email}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
