"""
Utility script to grant or revoke the admin role.

The lowest-id admin receives unlock commissions, so a fresh deployment needs
at least one admin before the first purchase.

Usage: python scripts/create_admin.py <command> [email]
"""

import sys
from pathlib import Path

from dotenv import load_dotenv
load_dotenv(Path(__file__).parent.parent / ".env")

from subshare.database.connection import get_db_context, init_db
from subshare.database.models import User, UserRole
from subshare.services.accounts import AccountService, UserQuery


def _find_user(db, email: str):
    return db.query(User).filter(User.email == email.strip().lower()).first()


def create_admin(email: str) -> bool:
    """Grant admin role to a registered user."""
    with get_db_context() as db:
        user = _find_user(db, email)

        if not user:
            print(f"❌ User with email '{email}' not found.")
            print("   Please register this user first via /api/v1/auth/register")
            return False

        if user.role == UserRole.ADMIN:
            print(f"ℹ️  User '{email}' is already an admin.")
            return True

        AccountService(db).set_role(user.id, UserRole.ADMIN)

        print(f"✅ Successfully granted admin role to '{email}'")
        print(f"\n📋 User details:")
        print(f"   - ID: {user.id}")
        print(f"   - Email: {user.email}")
        print(f"   - Name: {user.name}")
        print(f"   - Balance: {user.balance}")
        print(f"   - Is Active: {user.is_active}")
        return True


def revoke_admin(email: str) -> bool:
    """Return an admin to the user role."""
    with get_db_context() as db:
        user = _find_user(db, email)

        if not user:
            print(f"❌ User with email '{email}' not found.")
            return False

        if user.role != UserRole.ADMIN:
            print(f"ℹ️  User '{email}' is not an admin.")
            return True

        AccountService(db).set_role(user.id, UserRole.USER)
        print(f"✅ Successfully revoked admin role from '{email}'")
        return True


def list_admins() -> list:
    """Print all admins; the first one listed collects commissions."""
    with get_db_context() as db:
        admins, total = AccountService(db).list_users(UserQuery(role=UserRole.ADMIN, page_size=100))

        if not admins:
            print("ℹ️  No admin users found. Unlocks will not book commission.")
            return []

        print(f"\n👥 Admin users ({total}):")
        print("-" * 80)

        for admin in admins:
            status = "✅ Active" if admin.is_active else "❌ Inactive"
            print(f"\n📧 {admin.email}")
            print(f"   ID: {admin.id}")
            print(f"   Name: {admin.name}")
            print(f"   Balance: {admin.balance}")
            print(f"   Status: {status}")

        print("-" * 80)
        return [admin.email for admin in admins]


def print_usage():
    print("\n🛠️  Admin User Management Script")
    print("=" * 80)
    print("\nUsage:")
    print("  python scripts/create_admin.py <command> [email]")
    print("\nCommands:")
    print("  grant <email>    - Grant admin role to a user")
    print("  revoke <email>   - Revoke admin role from a user")
    print("  list             - List all admin users")
    print("  init-db          - Create tables without Alembic (local development)")
    print("=" * 80 + "\n")


def main(argv) -> int:
    if len(argv) < 2:
        print_usage()
        return 1

    command = argv[1].lower()

    if command == "list":
        list_admins()
        return 0

    if command == "init-db":
        init_db()
        print("✅ Database initialized successfully!")
        return 0

    if command in ("grant", "revoke"):
        if len(argv) < 3:
            print(f"❌ Error: Email required for '{command}' command")
            print_usage()
            return 1
        action = create_admin if command == "grant" else revoke_admin
        return 0 if action(argv[2]) else 1

    print(f"❌ Unknown command: {command}")
    print_usage()
    return 1


if __name__ == "__main__":
    sys.exit(main(sys.argv))
