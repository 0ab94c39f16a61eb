import argparse
import sys
from pathlib import Path

import anyio

ROOT = Path(__file__).resolve().parent.parent
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from accounts.config import load_settings
from accounts.database import Database, DatabaseUserStore, resolve_database_path
from accounts.errors import DuplicateKeyError, InvalidInputError
from accounts.service import UserService


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Create a user record in the account database")
    parser.add_argument("first_name", help="Given name")
    parser.add_argument("last_name", help="Family name")
    parser.add_argument("email", help="Unique email address")
    parser.add_argument("--phone", dest="phone_number", default=None, help="Optional phone number")
    parser.add_argument(
        "--db",
        dest="db_path",
        default=None,
        help="Path to the SQLite database (defaults to ACCOUNTS_DB_PATH or data/accounts.sqlite3)",
    )
    return parser.parse_args(argv)


def main(argv=None) -> int:
    args = parse_args(argv)

    settings = load_settings()
    db_path = resolve_database_path(args.db_path) if args.db_path else settings.database_path

    database = Database(db_path, timeout=settings.busy_timeout)
    database.initialize()
    service = UserService(DatabaseUserStore(database), name="db")

    try:
        user = anyio.run(
            service.create_user,
            args.first_name,
            args.last_name,
            args.email,
            args.phone_number,
        )
    except (DuplicateKeyError, InvalidInputError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1

    print(f"Created user {user.id}: {user.full_name} <{user.email}>")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
