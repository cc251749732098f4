"""Create an administrator account.

The HTTP API only ever registers standard accounts; this is the way to get
an administrator. Run after ``alembic upgrade head``::

    python -m scripts.create_admin alice 's3cret' "Alice Admin"
"""
import argparse
import asyncio
import sys

from miniboard.config import settings
from miniboard.database import async_session
from miniboard.errors import ConflictFailure
from miniboard.models import Role
from miniboard.schemas import RegisterRequest
from miniboard.security import PasswordHasher
from miniboard.services import account_service


async def create_admin(username: str, password: str, name: str) -> int:
    hasher = PasswordHasher(rounds=settings.BCRYPT_ROUNDS)
    data = RegisterRequest(username=username, password=password, name=name)

    async with async_session() as session:
        try:
            account = await account_service.create_account(
                session, data, hasher, role=Role.ADMINISTRATOR
            )
        except ConflictFailure:
            await session.rollback()
            print(f"Account {username!r} already exists", file=sys.stderr)
            return 1
        await session.commit()

    print(f"Created administrator {username!r} (id={account.id})")
    return 0


def main():
    parser = argparse.ArgumentParser(description="Create an administrator account")
    parser.add_argument("username")
    parser.add_argument("password")
    parser.add_argument("name", help="Display name")
    args = parser.parse_args()
    sys.exit(asyncio.run(create_admin(args.username, args.password, args.name)))


if __name__ == "__main__":
    main()
