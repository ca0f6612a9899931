#!/usr/bin/env python
"""Create an approved admin user."""

import argparse
import asyncio

from onboarding_api.database import async_session_maker, engine
from onboarding_api.models.domain.app_user import UserRole
from onboarding_api.repositories.user_repository import UserRepository
from onboarding_api.security.password import get_password_service


async def create_admin(username: str, password: str) -> bool:
    """Create an admin, or promote and approve an existing user."""
    password_service = get_password_service()

    try:
        async with async_session_maker() as session:
            repo = UserRepository(session)
            existing = await repo.get_by_username(username)
            if existing:
                await repo.update(existing.id, role=UserRole.ADMIN.value, approved=True)
                await session.commit()
                print(f"User {existing.username} promoted to admin")
                return True

            await repo.create(
                username=username,
                password_hash=password_service.hash_password(password),
                role=UserRole.ADMIN.value,
                approved=True,
            )
            await session.commit()
    finally:
        await engine.dispose()

    print(f"Admin user created: {username}")
    return True


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Create an admin user")
    parser.add_argument("--username", required=True, help="Username")
    parser.add_argument("--password", required=True, help="Password")
    args = parser.parse_args()

    asyncio.run(create_admin(args.username, args.password))
