#!/usr/bin/env python3
"""
Script to create an admin user.
"""
import getpass
import sys
from pathlib import Path

# Add parent directory to the system path
sys.path.insert(0, str(Path(__file__).parent.parent))

from core.entities import UserRole
from database.connection import Database
from services.data_service_factory import DataServiceFactory
import config


def create_admin():
    """Create an admin user through the configured data service."""
    if config.DATA_SERVICE_TYPE in ("database", "supabase"):
        config.db = Database(
            database_url=config.DATABASE_URL,
            pool_size=config.DB_POOL_SIZE,
            max_overflow=config.DB_MAX_OVERFLOW
        )
        if config.DB_CREATE_TABLES:
            config.db.create_tables()

    data_service = DataServiceFactory.get_instance()

    print("Creating admin user...")
    print("=" * 50)

    # Get user input
    email = input("Email: ").strip()
    password = getpass.getpass("Password: ").strip()
    full_name = input("Full name: ").strip()

    if not email or not password or not full_name:
        print("Error: Email, password, and full name are required")
        sys.exit(1)

    result = data_service.sign_up(email, password, full_name, UserRole.ADMIN)
    if result.error:
        print(f"\n✗ Error: {result.error}")
        sys.exit(1)

    user = result.data.user
    print(f"\n✓ Admin user created successfully!")
    print(f"  Name: {user.full_name}")
    print(f"  Email: {user.email}")
    print(f"  Role: {user.role}")


if __name__ == "__main__":
    create_admin()
