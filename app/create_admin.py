"""
Provision an admin account from the command line.

    python create_admin.py admin@example.com --name "Site Admin"

Creates the user (or promotes an existing one) and sets its password, read
from ADMIN_PASSWORD or prompted for.
"""
import argparse
import getpass
import os
import sys

from dotenv import load_dotenv

load_dotenv()

from database import Base, SessionLocal, engine
from errors import ValidationError
from services.auth_service import provision_admin


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Create or promote an admin user")
    parser.add_argument("email")
    parser.add_argument("--name", default=None)
    args = parser.parse_args(argv)

    password = os.getenv("ADMIN_PASSWORD") or getpass.getpass("Password: ")

    Base.metadata.create_all(bind=engine)
    db = SessionLocal()
    try:
        user = provision_admin(db, args.email, args.name, password)
    except ValidationError as e:
        print(f"error: {e.msg}", file=sys.stderr)
        return 1
    finally:
        db.close()
    print(f"Admin ready: {user.email} ({user.id})")
    return 0


if __name__ == "__main__":
    sys.exit(main())
