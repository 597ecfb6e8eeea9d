import pytest
from httpx import AsyncClient
from sqlalchemy import select

from app.db.models.team import Team
from tests.fixtures.mocks.storage import CDN_BASE
from tests.utils.factory import create_role, create_team, create_user


def _picture(name: str = "me.png", data: bytes = b"\x89PNG face", mime: str = "image/png") -> dict:
    return {"profile_picture": (name, data, mime)}


# ─────────────────────────────────────────────────────────────
# 📖 Reads
# ─────────────────────────────────────────────────────────────
@pytest.mark.anyio
async def test_list_teams_excludes_trashed(async_client: AsyncClient, db_session, storage):
    role = await create_role(db_session, name="Developer")
    first = await create_team(db_session, member=await create_user(db_session), role=role, name="Ann", storage=storage)
    gone = await create_team(db_session, member=await create_user(db_session), role=role, name="Bob")
    gone.soft_delete()
    await db_session.commit()

    resp = await async_client.get("/api/teams")
    assert resp.status_code == 200
    body = resp.json()
    assert body["message"] == "Team members retrieved successfully"
    assert [t["id"] for t in body["data"]] == [first.id]
    entry = body["data"][0]
    assert entry["profile_picture"] == f"{CDN_BASE}/{first.profile_picture}"
    assert entry["role"]["name"] == "Developer"
    assert entry["user"]["id"] == first.user_id


@pytest.mark.anyio
async def test_show_team_missing_picture(async_client: AsyncClient, db_session):
    role = await create_role(db_session, name="Designer")
    team = await create_team(db_session, member=await create_user(db_session), role=role)
    await db_session.commit()

    resp = await async_client.get(f"/api/teams/{team.id}")
    assert resp.status_code == 200
    assert resp.json()["message"] == "Team member retrieved successfully"
    assert resp.json()["data"]["profile_picture"] is None


@pytest.mark.anyio
async def test_show_team_not_found(async_client: AsyncClient):
    resp = await async_client.get("/api/teams/31337")
    assert resp.status_code == 404
    assert resp.json()["message"] == "Team member not found"


# ─────────────────────────────────────────────────────────────
# ✍️ Create
# ─────────────────────────────────────────────────────────────
@pytest.mark.anyio
async def test_create_team_member(async_client: AsyncClient, db_session, admin_headers, storage):
    role = await create_role(db_session, name="Manager")
    member = await create_user(db_session, name="Grace Hopper")
    await db_session.commit()

    resp = await async_client.post(
        "/api/teams",
        data={"name": "Grace Hopper", "role_id": str(role.id), "bio": "Compilers.", "user_id": str(member.id)},
        files=_picture(),
        headers=admin_headers,
    )
    assert resp.status_code == 201, resp.text
    body = resp.json()
    assert body["message"] == "Team member created successfully"
    data = body["data"]
    assert data["name"] == "Grace Hopper"
    assert data["bio"] == "Compilers."
    assert data["role"]["id"] == role.id
    assert data["user"]["id"] == member.id

    key = data["profile_picture"].removeprefix(f"{CDN_BASE}/")
    assert key.startswith("teams/")
    assert storage.objects[key]["content_type"] == "image/png"


@pytest.mark.anyio
async def test_create_team_requires_picture(async_client: AsyncClient, admin_headers):
    resp = await async_client.post("/api/teams", data={"name": "No Pic"}, headers=admin_headers)
    assert resp.status_code == 422
    assert resp.json()["errors"] == {"profile_picture": ["The profile picture is required"]}


@pytest.mark.anyio
async def test_create_team_rejects_video_picture(async_client: AsyncClient, db_session, admin_headers):
    role = await create_role(db_session)
    member = await create_user(db_session)
    await db_session.commit()

    resp = await async_client.post(
        "/api/teams",
        data={"name": "Video Person", "role_id": role.id, "bio": "Moves", "user_id": member.id},
        files=_picture("clip.mp4", b"ftyp", "video/mp4"),
        headers=admin_headers,
    )
    assert resp.status_code == 422
    assert resp.json()["errors"]["profile_picture"] == [
        "The profile picture field must be an image.",
        "The profile picture field must be a file of type: jpeg, png, jpg.",
    ]


@pytest.mark.anyio
async def test_create_team_field_errors(async_client: AsyncClient, admin_headers):
    resp = await async_client.post(
        "/api/teams",
        data={"name": "", "role_id": "abc", "bio": "", "user_id": "999999"},
        files=_picture(),
        headers=admin_headers,
    )
    assert resp.status_code == 422
    errors = resp.json()["errors"]
    assert errors["name"] == ["The name field is required."]
    assert errors["role_id"] == ["The role id field must be an integer."]
    assert errors["bio"] == ["The bio field is required."]
    assert errors["user_id"] == ["The selected user id is invalid."]


@pytest.mark.anyio
async def test_create_team_missing_ids(async_client: AsyncClient, admin_headers):
    resp = await async_client.post(
        "/api/teams", data={"name": "Nobody", "bio": "Hi"}, files=_picture(), headers=admin_headers
    )
    errors = resp.json()["errors"]
    assert errors["role_id"] == ["The role id field is required."]
    assert errors["user_id"] == ["The user id field is required."]


@pytest.mark.anyio
async def test_create_team_rejects_trashed_role(async_client: AsyncClient, db_session, admin_headers):
    role = await create_role(db_session, name="Retired")
    role.soft_delete()
    member = await create_user(db_session)
    await db_session.commit()

    resp = await async_client.post(
        "/api/teams",
        data={"name": "Late", "role_id": role.id, "bio": "Too late", "user_id": member.id},
        files=_picture(),
        headers=admin_headers,
    )
    assert resp.status_code == 422
    assert resp.json()["errors"] == {"role_id": ["The selected role id is invalid."]}


@pytest.mark.anyio
async def test_create_team_user_already_listed(async_client: AsyncClient, db_session, admin_headers, storage):
    role = await create_role(db_session)
    member = await create_user(db_session)
    await create_team(db_session, member=member, role=role)
    await db_session.commit()

    resp = await async_client.post(
        "/api/teams",
        data={"name": "Twice", "role_id": role.id, "bio": "Again", "user_id": member.id},
        files=_picture(),
        headers=admin_headers,
    )
    assert resp.status_code == 422
    assert resp.json()["errors"] == {"user_id": ["This user already has a team member entry."]}
    assert storage.objects == {}


@pytest.mark.anyio
async def test_create_team_bio_too_long(async_client: AsyncClient, db_session, admin_headers):
    role = await create_role(db_session)
    member = await create_user(db_session)
    await db_session.commit()

    resp = await async_client.post(
        "/api/teams",
        data={"name": "Verbose", "role_id": role.id, "bio": "b" * 1001, "user_id": member.id},
        files=_picture(),
        headers=admin_headers,
    )
    assert resp.json()["errors"] == {"bio": ["The bio field must not be greater than 1000 characters."]}


@pytest.mark.anyio
async def test_create_team_forbidden(async_client: AsyncClient, user_headers):
    resp = await async_client.post("/api/teams", data={}, headers=user_headers)
    assert resp.status_code == 403
    assert resp.json()["message"] == "You are not authorized to create team members"


# ─────────────────────────────────────────────────────────────
# 🛠️ Update
# ─────────────────────────────────────────────────────────────
@pytest.mark.anyio
async def test_update_team_fields(async_client: AsyncClient, db_session, admin_headers, storage):
    old_role = await create_role(db_session, name="Junior")
    new_role = await create_role(db_session, name="Senior")
    team = await create_team(db_session, member=await create_user(db_session), role=old_role, storage=storage)
    await db_session.commit()

    resp = await async_client.patch(
        f"/api/teams/{team.id}",
        json={"name": "Jane Q. Doe", "role_id": new_role.id, "bio": "Promoted"},
        headers=admin_headers,
    )
    assert resp.status_code == 200, resp.text
    assert resp.json()["message"] == "Team member updated successfully"
    data = resp.json()["data"]
    assert data["name"] == "Jane Q. Doe"
    assert data["role"]["id"] == new_role.id
    assert data["bio"] == "Promoted"


@pytest.mark.anyio
async def test_update_team_picture_keeps_old_object(async_client: AsyncClient, db_session, admin_headers, storage):
    role = await create_role(db_session)
    team = await create_team(db_session, member=await create_user(db_session), role=role, storage=storage)
    await db_session.commit()
    old_key = team.profile_picture

    resp = await async_client.put(
        f"/api/teams/{team.id}", files=_picture("new.jpeg", b"\xff\xd8new", "image/jpeg"), headers=admin_headers
    )
    assert resp.status_code == 200, resp.text
    new_key = resp.json()["data"]["profile_picture"].removeprefix(f"{CDN_BASE}/")
    assert new_key != old_key
    assert new_key.endswith(".jpeg")
    assert old_key in storage.objects
    assert storage.deleted == []


@pytest.mark.anyio
async def test_update_team_role_errors(async_client: AsyncClient, db_session, admin_headers):
    role = await create_role(db_session)
    trashed = await create_role(db_session, name="Trashed Role")
    trashed.soft_delete()
    team = await create_team(db_session, member=await create_user(db_session), role=role)
    await db_session.commit()

    cases = [
        ({"role_id": ""}, "The role is required"),
        ({"role_id": "x1"}, "The role must be a valid ID"),
        ({"role_id": "99999999999999999999"}, "The role must be a valid ID"),
        ({"role_id": trashed.id}, "The selected role does not exist"),
    ]
    for body, message in cases:
        resp = await async_client.put(f"/api/teams/{team.id}", json=body, headers=admin_headers)
        assert resp.status_code == 422
        assert resp.json()["errors"] == {"role_id": [message]}


@pytest.mark.anyio
async def test_update_team_bio_errors(async_client: AsyncClient, db_session, admin_headers):
    role = await create_role(db_session)
    team = await create_team(db_session, member=await create_user(db_session), role=role)
    await db_session.commit()

    resp = await async_client.put(f"/api/teams/{team.id}", json={"bio": "  "}, headers=admin_headers)
    assert resp.json()["errors"] == {"bio": ["The bio field is required"]}

    resp = await async_client.put(f"/api/teams/{team.id}", json={"bio": "z" * 1001}, headers=admin_headers)
    assert resp.json()["errors"] == {"bio": ["The bio must not exceed 1000 characters"]}


@pytest.mark.anyio
async def test_update_team_nothing_to_update(async_client: AsyncClient, db_session, admin_headers):
    role = await create_role(db_session)
    team = await create_team(db_session, member=await create_user(db_session), role=role)
    await db_session.commit()

    resp = await async_client.put(f"/api/teams/{team.id}", json={}, headers=admin_headers)
    assert resp.status_code == 422
    assert resp.json() == {"status": "error", "message": "No valid data provided for update"}


@pytest.mark.anyio
async def test_update_team_not_found(async_client: AsyncClient, admin_headers):
    resp = await async_client.put("/api/teams/9999", json={"bio": "x"}, headers=admin_headers)
    assert resp.status_code == 404


# ─────────────────────────────────────────────────────────────
# 🗑️ Delete
# ─────────────────────────────────────────────────────────────
@pytest.mark.anyio
async def test_delete_team_soft_deletes_and_keeps_picture(async_client: AsyncClient, db_session, admin_headers, storage):
    role = await create_role(db_session)
    team = await create_team(db_session, member=await create_user(db_session), role=role, storage=storage)
    await db_session.commit()
    team_id, key = team.id, team.profile_picture

    resp = await async_client.delete(f"/api/teams/{team_id}", headers=admin_headers)
    assert resp.status_code == 200
    assert resp.json() == {"status": "success", "message": "Team member deleted successfully"}
    assert key in storage.objects

    row = (
        await db_session.execute(select(Team).where(Team.id == team_id).execution_options(populate_existing=True))
    ).scalar_one()
    assert row.deleted_at is not None
    assert (await async_client.get(f"/api/teams/{team_id}")).status_code == 404


@pytest.mark.anyio
async def test_delete_team_forbidden(async_client: AsyncClient, db_session, user_headers):
    role = await create_role(db_session)
    team = await create_team(db_session, member=await create_user(db_session), role=role)
    await db_session.commit()

    resp = await async_client.delete(f"/api/teams/{team.id}", headers=user_headers)
    assert resp.status_code == 403
    assert resp.json()["message"] == "You are not authorized to delete this team member"


@pytest.mark.anyio
async def test_create_team_ids_beyond_bigint(async_client: AsyncClient, admin_headers, storage):
    resp = await async_client.post(
        "/api/teams",
        data={
            "name": "Grace Hopper",
            "role_id": "99999999999999999999",
            "bio": "Compilers.",
            "user_id": "99999999999999999999",
        },
        files=_picture(),
        headers=admin_headers,
    )
    assert resp.status_code == 422
    assert resp.json()["errors"] == {
        "role_id": ["The selected role id is invalid."],
        "user_id": ["The selected user id is invalid."],
    }
    assert storage.objects == {}


@pytest.mark.anyio
async def test_team_id_beyond_bigint_is_not_found(async_client: AsyncClient, admin_headers):
    huge = 2**63
    assert (await async_client.get(f"/api/teams/{huge}")).status_code == 404
    resp = await async_client.delete(f"/api/teams/{huge}", headers=admin_headers)
    assert resp.status_code == 404
    assert resp.json() == {"status": "error", "message": "Team member not found"}
