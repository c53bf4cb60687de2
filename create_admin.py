#!/usr/bin/env python3
"""
Create the first user of the booking engine.

Root and super_admin users see every establishment. Managers and staff must
be attached to an existing establishment.
"""

import asyncio
import sys

from sqlalchemy import select

from app.core.database import AsyncSessionLocal, async_engine
from app.core.exceptions import ScopeConfigurationError
from app.core.scope import resolve_scope
from app.core.security import get_password_hash
from app.models.base import Base
from app.models.establishment import Establishment
from app.models.user import User, UserRole


def prompt_role() -> UserRole:
    choices = ", ".join(role.value for role in UserRole)
    value = input(f"Role [{choices}] (default root): ").strip() or UserRole.ROOT.value
    return UserRole(value)


async def create_user() -> bool:
    print("Creating a user for the booking engine")
    print("-" * 40)

    username = input("Username: ").strip()
    email = input("Email: ").strip()
    password = input("Password: ").strip()
    if not username or not email or not password:
        print("Username, email and password are required")
        return False

    if password != input("Confirm password: ").strip():
        print("Passwords do not match")
        return False

    if len(password) < 6:
        print("Password must be at least 6 characters long")
        return False

    try:
        role = prompt_role()
    except ValueError:
        print("Unknown role")
        return False

    establishment_id = None
    raw_establishment = input("Home establishment id (blank for none): ").strip()
    if raw_establishment:
        establishment_id = int(raw_establishment)

    try:
        resolve_scope(role, establishment_id)
    except ScopeConfigurationError as exc:
        print(exc.message)
        return False

    async with async_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async with AsyncSessionLocal() as db:
        if establishment_id is not None:
            establishment = await db.get(Establishment, establishment_id)
            if establishment is None:
                print(f"Establishment {establishment_id} does not exist")
                return False

        existing_user_stmt = select(User).where(
            (User.username == username) | (User.email == email)
        )
        existing_user_result = await db.execute(existing_user_stmt)
        if existing_user_result.scalar_one_or_none():
            print(f"User with username '{username}' or email '{email}' already exists")
            return False

        user = User(
            username=username,
            email=email,
            hashed_password=get_password_hash(password),
            role=role,
            establishment_id=establishment_id,
            is_active=True,
        )
        db.add(user)
        await db.commit()
        await db.refresh(user)

    print(f"Created {user.role.value} user {user.username} (id {user.id})")
    return True


async def main():
    try:
        success = await create_user()
    except KeyboardInterrupt:
        print("\nCancelled")
        sys.exit(1)
    finally:
        await async_engine.dispose()

    sys.exit(0 if success else 1)


if __name__ == "__main__":
    asyncio.run(main())
