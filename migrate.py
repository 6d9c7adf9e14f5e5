#!/usr/bin/env python3
"""
Database management script.
Creates and drops the schema and seeds the first master account.
"""

import asyncio
import os
import sys
import argparse
import logging

from homesapp.config import settings
from homesapp.database import AsyncSessionLocal, create_tables, drop_tables
from homesapp.models.user import UserRole, UserStatus
from homesapp.repositories.user import UserRepository

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


class MigrationManager:
    """Schema and seed management against the configured database."""

    async def create(self) -> None:
        logger.info(f"Creating tables on {settings.environment} database")
        await create_tables()

    async def drop(self) -> None:
        logger.warning("Dropping all tables - all data will be lost!")
        await drop_tables()

    async def seed(self, email: str, password: str, first_name: str = "Master") -> None:
        """Create an approved master account unless one with that email exists."""
        async with AsyncSessionLocal() as session:
            repo = UserRepository(session)
            if await repo.get_by_email(email.lower()):
                logger.info(f"User {email} already exists, skipping seed")
                return

            user = await repo.create_user({
                "email": email,
                "password": password,
                "first_name": first_name,
                "role": UserRole.MASTER,
                "status": UserStatus.APPROVED,
            })
            logger.info(f"Master account created: {user.email}")

    async def reset(self, email: str, password: str) -> None:
        if not settings.is_development and not settings.is_testing:
            raise RuntimeError("Database reset is only allowed in development or test mode")
        await self.drop()
        await self.create()
        await self.seed(email, password)
        logger.info("Database reset completed")


def main():
    """Main CLI interface for database management."""
    parser = argparse.ArgumentParser(description="HomesApp database management")
    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    subparsers.add_parser("create", help="Create all tables")
    subparsers.add_parser("drop", help="Drop all tables (development only)")

    seed_parser = subparsers.add_parser("seed", help="Create the first master account")
    reset_parser = subparsers.add_parser("reset", help="Drop, create and seed (development only)")
    reset_parser.add_argument("--confirm", action="store_true", help="Confirm database reset")

    for sub in (seed_parser, reset_parser):
        sub.add_argument("--email", default=os.getenv("SEED_ADMIN_EMAIL"), help="Master email (SEED_ADMIN_EMAIL)")
        sub.add_argument(
            "--password", default=os.getenv("SEED_ADMIN_PASSWORD"), help="Master password (SEED_ADMIN_PASSWORD)"
        )

    args = parser.parse_args()

    if not args.command:
        parser.print_help()
        return

    if args.command in ("seed", "reset") and not (args.email and args.password):
        parser.error("seed needs --email and --password or SEED_ADMIN_EMAIL and SEED_ADMIN_PASSWORD")

    manager = MigrationManager()

    try:
        if args.command == "create":
            asyncio.run(manager.create())

        elif args.command == "drop":
            asyncio.run(manager.drop())

        elif args.command == "seed":
            asyncio.run(manager.seed(args.email, args.password))

        elif args.command == "reset":
            if not args.confirm:
                print("Database reset requires --confirm flag")
                return
            asyncio.run(manager.reset(args.email, args.password))

    except Exception as e:
        logger.error(f"Command failed: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
