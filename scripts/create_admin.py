#!/usr/bin/env python3
"""
Script to create an administrator account.

Administrators cannot self-register unless ALLOW_ADMIN_SELF_REGISTRATION is
set, so this is the normal way to provision them.
"""
import getpass
import sys
from pathlib import Path

# Add parent directory to the system path
sys.path.insert(0, str(Path(__file__).parent.parent))

from database.connection import Database
from database.models import UserType
from core.exceptions import DuplicateAccount, ValidationFailed
from services.auth_service import AuthService
import config


def create_admin():
    """Create an administrator user."""
    db = Database(
        database_url=config.DATABASE_URL,
        pool_size=config.DB_POOL_SIZE,
        max_overflow=config.DB_MAX_OVERFLOW
    )
    db.create_tables()

    print("Creating administrator...")
    print("=" * 50)

    email = input("Email: ").strip()
    full_name = input("Full name: ").strip()
    password = getpass.getpass("Password: ").strip()

    if not email or not password or not full_name:
        print("Error: Email, full name and password are required")
        sys.exit(1)

    try:
        with db.get_session() as session:
            user = AuthService.register(
                db=session,
                email=email,
                password=password,
                full_name=full_name,
                user_type=UserType.ADMIN,
            )
            print("\n✓ Administrator created successfully!")
            print(f"  Email: {user.email}")
            print(f"  User ID: {user.id}")
    except ValidationFailed as e:
        for error in e.errors:
            print(f"\n✗ {error.field}: {error.message}")
        sys.exit(1)
    except DuplicateAccount as e:
        print(f"\n✗ Error: {e}")
        sys.exit(1)
    finally:
        db.dispose()


if __name__ == "__main__":
    create_admin()
