#!/usr/bin/env python3
"""Create (or promote) a mosque admin user and optionally attach a mosque."""

import asyncio
import sys
from pathlib import Path
from uuid import uuid4

# Add project root to path for imports
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from sqlalchemy import select

from app.database import AsyncSessionLocal
from app.models.mosque import Mosque
from app.models.user import User
from app.utils.validators import normalize_phone, validate_malaysian_phone


async def create_admin(
    email: str,
    full_name: str,
    phone: str | None = None,
    mosque_name: str | None = None,
) -> None:
    """Create an admin user if it doesn't exist, else promote it."""
    if phone:
        if not validate_malaysian_phone(phone):
            print(f"ERROR: Invalid Malaysian phone number: {phone}")
            sys.exit(1)
        phone = normalize_phone(phone)

    async with AsyncSessionLocal() as session:

        # Check if user already exists
        result = await session.execute(select(User).where(User.email == email))
        admin = result.scalar_one_or_none()

        if admin:
            admin.role = "admin"
            admin.is_active = True
            admin.full_name = full_name
            if phone:
                admin.phone = phone
            print(f"Promoted existing user to admin: {email}")
        else:
            admin = User(
                id=uuid4(),
                email=email,
                full_name=full_name,
                phone=phone,
                role="admin",
                is_active=True,
            )
            session.add(admin)
            print(f"Created admin user: {email}")

        await session.flush()

        if mosque_name:
            mosque = Mosque(id=uuid4(), name=mosque_name, admin_id=admin.id)
            session.add(mosque)
            print(f"Created mosque '{mosque_name}' ({mosque.id})")

        await session.commit()

        print(f"User ID: {admin.id}")
        print("Role: admin")


if __name__ == "__main__":
    import argparse

    parser = argparse.ArgumentParser(description="Create a mosque admin user")
    parser.add_argument("--email", required=True, help="Admin email")
    parser.add_argument("--full-name", required=True, help="Full name")
    parser.add_argument("--phone", default=None, help="Phone number")
    parser.add_argument("--mosque-name", default=None, help="Create a mosque owned by this admin")

    args = parser.parse_args()

    asyncio.run(
        create_admin(
            email=args.email,
            full_name=args.full_name,
            phone=args.phone,
            mosque_name=args.mosque_name,
        )
    )
