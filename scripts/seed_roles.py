#!/usr/bin/env python3
from __future__ import annotations

"""
CMS • Seed job roles
====================

Inserts the default team-member roles when they are missing. Safe to run
repeatedly: existing names (trashed ones included) are left untouched.

Usage
-----
    python scripts/seed_roles.py
"""

import asyncio
import os
import sys
from typing import List, Tuple

sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from loguru import logger
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core import logger as _logsetup  # noqa: F401
from app.db.models.role import Role
from app.db.session import async_engine, transactional_async_session

DEFAULT_ROLES: List[Tuple[str, str]] = [
    ("Developer", "Software Developer role"),
    ("Designer", "UI/UX Designer role"),
    ("Manager", "Project Management role"),
]


async def seed_roles(db: AsyncSession) -> int:
    """Add any missing default role; returns how many rows were inserted."""
    existing = set((await db.execute(select(Role.name))).scalars().all())
    created = 0
    for name, description in DEFAULT_ROLES:
        if name in existing:
            continue
        db.add(Role(name=name, description=description))
        created += 1
    return created


async def main() -> None:
    async with transactional_async_session() as db:
        created = await seed_roles(db)
    await async_engine.dispose()
    logger.info("Role seed complete | created={} total_defaults={}", created, len(DEFAULT_ROLES))


if __name__ == "__main__":
    asyncio.run(main())
