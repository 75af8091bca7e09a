#!/usr/bin/env python
"""Seed script to create the initial admin user.

Run once during initial setup. The admin can then create consultants and
vendors through the API.

Usage:
    python backend/scripts/seed_admin.py

Environment Variables:
    DATABASE_URL: PostgreSQL connection string
    PASSWORD_PEPPER: Password hashing pepper (required)
    ADMIN_EMAIL: Email for admin user (default: admin@example.com)
    ADMIN_PASSWORD: Password for admin user (default: AdminPass123)
    ADMIN_NAME: Display name for admin user (default: System Administrator)
"""

import os
import sys
from pathlib import Path

# Add backend/src to Python path
backend_src = Path(__file__).parent.parent / "src"
sys.path.insert(0, str(backend_src))

from sqlalchemy.exc import SQLAlchemyError

from database import SessionLocal
from models.user import User
from auth.password import hash_password, validate_password_strength


def main():
    """Create initial admin user."""
    admin_email = os.getenv("ADMIN_EMAIL", "admin@example.com")
    admin_password = os.getenv("ADMIN_PASSWORD", "AdminPass123")
    admin_name = os.getenv("ADMIN_NAME", "System Administrator")

    is_valid, error_msg = validate_password_strength(admin_password)
    if not is_valid:
        print(f"ERROR: Password does not meet strength requirements: {error_msg}")
        sys.exit(1)

    session = SessionLocal()

    try:
        existing_user = session.query(User).filter(User.email == admin_email.lower()).first()
        if existing_user:
            print(f"ERROR: User with email {admin_email} already exists")
            sys.exit(1)

        admin_user = User(
            email=admin_email.lower(),
            name=admin_name,
            role="admin",
            password_hash=hash_password(admin_password),
            is_active=True,
        )

        session.add(admin_user)
        session.commit()

        print("SUCCESS: Admin user created")
        print(f"  ID:    {admin_user.id}")
        print(f"  Email: {admin_user.email}")
        print(f"  Name:  {admin_user.name}")
        print(f"  Role:  {admin_user.role}")

    except SQLAlchemyError as e:
        session.rollback()
        print(f"ERROR: Failed to create admin user: {e}")
        sys.exit(1)

    finally:
        session.close()


if __name__ == "__main__":
    main()
