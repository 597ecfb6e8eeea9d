import pytest
from sqlalchemy import select

from app.db.models.role import Role
from scripts.seed_roles import DEFAULT_ROLES, seed_roles
from tests.utils.factory import create_role


@pytest.mark.anyio
async def test_seed_roles_inserts_defaults_once(db_session):
    assert await seed_roles(db_session) == len(DEFAULT_ROLES)
    await db_session.commit()

    assert await seed_roles(db_session) == 0
    names = (await db_session.execute(select(Role.name))).scalars().all()
    assert sorted(names) == sorted(name for name, _ in DEFAULT_ROLES)


@pytest.mark.anyio
async def test_seed_roles_skips_trashed_names(db_session):
    trashed = await create_role(db_session, name="Designer")
    trashed.soft_delete()
    await db_session.commit()

    assert await seed_roles(db_session) == len(DEFAULT_ROLES) - 1
