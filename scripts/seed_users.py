"""Create tables and demo users in the configured database."""
import argparse

from backend.core.database import get_db, init_db
from backend.services.user_service import UserService


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Seed demo users")
    parser.add_argument("--password", default="password123", help="Password for every demo user")
    return parser.parse_args()


def main() -> None:
    args = parse_args()
    init_db()
    with get_db() as db:
        created = UserService(db).seed_demo_users(password=args.password)
    if created:
        print(f"Created {created} demo users")
    else:
        print("Users table is not empty, nothing to do")


if __name__ == "__main__":
    main()
