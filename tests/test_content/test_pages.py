from datetime import datetime, timedelta, timezone

import pytest
from httpx import AsyncClient
from sqlalchemy import select

from app.db.models.page import Page
from tests.fixtures.mocks.storage import CDN_BASE
from tests.utils.factory import create_page

PAST = datetime(2024, 1, 1, tzinfo=timezone.utc)


def _banner(name: str = "banner.png", data: bytes = b"\x89PNG fake", mime: str = "image/png") -> dict:
    return {"banner": (name, data, mime)}


def _form(**overrides) -> dict:
    form = {"title": "About Us", "content": "<p>Hello world</p>", "published_at": "2024-05-01T10:00:00Z"}
    form.update(overrides)
    return form


# ─────────────────────────────────────────────────────────────
# 📖 Reads
# ─────────────────────────────────────────────────────────────
@pytest.mark.anyio
async def test_list_pages_hides_unpublished_for_guests(async_client: AsyncClient, db_session, admin_user, storage):
    await create_page(db_session, author=admin_user, title="Old News", published_at=PAST, storage=storage)
    await create_page(db_session, author=admin_user, title="Draft Page", storage=storage)
    await create_page(
        db_session,
        author=admin_user,
        title="Scheduled Page",
        published_at=datetime.now(timezone.utc) + timedelta(days=2),
        storage=storage,
    )
    await db_session.commit()

    resp = await async_client.get("/api/pages")
    assert resp.status_code == 200
    body = resp.json()
    assert body["status"] == "success"
    assert body["message"] == "Pages retrieved successfully"
    assert [p["slug"] for p in body["data"]] == ["old-news"]


@pytest.mark.anyio
async def test_list_pages_admin_sees_all_newest_first(async_client: AsyncClient, db_session, admin_user, admin_headers):
    await create_page(db_session, author=admin_user, title="First", published_at=PAST)
    await create_page(db_session, author=admin_user, title="Second")
    await db_session.commit()

    resp = await async_client.get("/api/pages", headers=admin_headers)
    assert resp.status_code == 200
    assert [p["slug"] for p in resp.json()["data"]] == ["second", "first"]


@pytest.mark.anyio
async def test_list_pages_normal_user_sees_published_only(async_client: AsyncClient, db_session, admin_user, user_headers):
    await create_page(db_session, author=admin_user, title="Live", published_at=PAST)
    await create_page(db_session, author=admin_user, title="Hidden")
    await db_session.commit()

    resp = await async_client.get("/api/pages", headers=user_headers)
    assert [p["slug"] for p in resp.json()["data"]] == ["live"]


@pytest.mark.anyio
async def test_list_pages_rejects_bad_token(async_client: AsyncClient):
    resp = await async_client.get("/api/pages", headers={"Authorization": "Bearer broken"})
    assert resp.status_code == 401
    assert resp.json()["message"] == "Unauthenticated."


@pytest.mark.anyio
async def test_show_page_by_slug(async_client: AsyncClient, db_session, admin_user, storage):
    page = await create_page(db_session, author=admin_user, title="Contact Us", published_at=PAST, storage=storage)
    await db_session.commit()

    resp = await async_client.get("/api/pages/contact-us")
    assert resp.status_code == 200
    data = resp.json()["data"]
    assert resp.json()["message"] == "Page retrieved successfully"
    assert data["id"] == page.id
    assert data["banner_type"] == "image"
    assert data["banner_path"] == f"{CDN_BASE}/{page.banner_path}"
    assert data["user"]["id"] == admin_user.id
    assert "user_id" not in data


@pytest.mark.anyio
async def test_show_unpublished_page_is_404_for_guests(async_client: AsyncClient, db_session, admin_user, admin_headers):
    await create_page(db_session, author=admin_user, title="Secret Draft")
    await db_session.commit()

    resp = await async_client.get("/api/pages/secret-draft")
    assert resp.status_code == 404
    assert resp.json() == {"status": "error", "message": "Page not found"}

    resp = await async_client.get("/api/pages/secret-draft", headers=admin_headers)
    assert resp.status_code == 200


@pytest.mark.anyio
async def test_show_page_invalid_slug(async_client: AsyncClient):
    resp = await async_client.get("/api/pages/Bad_Slug!")
    assert resp.status_code == 422
    assert resp.json()["errors"] == {"slug": ["Invalid slug format"]}


# ─────────────────────────────────────────────────────────────
# ✍️ Create
# ─────────────────────────────────────────────────────────────
@pytest.mark.anyio
async def test_create_page(async_client: AsyncClient, admin_headers, admin_user, storage, db_session):
    resp = await async_client.post("/api/pages", data=_form(), files=_banner(), headers=admin_headers)
    assert resp.status_code == 201, resp.text
    body = resp.json()
    assert body["message"] == "Page created successfully"
    assert resp.headers["cache-control"] == "no-store"

    data = body["data"]
    assert data["title"] == "About Us"
    assert data["slug"] == "about-us"
    assert data["banner_type"] == "image"
    assert data["published_at"].startswith("2024-05-01T10:00:00")
    assert data["user"]["id"] == admin_user.id

    page = (await db_session.execute(select(Page).where(Page.id == data["id"]))).scalar_one()
    assert page.banner_path.startswith("pages/")
    assert page.banner_path.endswith(".png")
    assert storage.objects[page.banner_path]["content_type"] == "image/png"
    assert data["banner_path"] == f"{CDN_BASE}/{page.banner_path}"


@pytest.mark.anyio
async def test_create_page_video_banner(async_client: AsyncClient, admin_headers):
    resp = await async_client.post(
        "/api/pages",
        data=_form(title="Showreel"),
        files=_banner("reel.mp4", b"\x00\x00\x00\x18ftypmp42", "video/mp4"),
        headers=admin_headers,
    )
    assert resp.status_code == 201, resp.text
    assert resp.json()["data"]["banner_type"] == "video"


@pytest.mark.anyio
async def test_create_page_forbidden_for_normal_user(async_client: AsyncClient, user_headers):
    # policy runs before validation, so an empty body still yields 403
    resp = await async_client.post("/api/pages", data={}, headers=user_headers)
    assert resp.status_code == 403
    assert resp.json() == {"status": "error", "message": "You are not authorized to create pages"}


@pytest.mark.anyio
async def test_create_page_requires_auth(async_client: AsyncClient):
    resp = await async_client.post("/api/pages", data=_form(), files=_banner())
    assert resp.status_code == 401


@pytest.mark.anyio
async def test_create_page_requires_banner(async_client: AsyncClient, admin_headers):
    resp = await async_client.post("/api/pages", data=_form(), headers=admin_headers)
    assert resp.status_code == 422
    assert resp.json()["errors"] == {"banner": ["The banner file is required"]}


@pytest.mark.anyio
async def test_create_page_field_errors(async_client: AsyncClient, admin_headers, storage):
    resp = await async_client.post(
        "/api/pages",
        data={"title": "<b>Bad</b>", "content": "   ", "published_at": "2024-05-01"},
        files=_banner("notes.txt", b"text", "text/plain"),
        headers=admin_headers,
    )
    assert resp.status_code == 422
    errors = resp.json()["errors"]
    assert "The title contains invalid characters." in errors["title"]
    assert errors["content"] == ["The content field is required."]
    assert errors["banner"] == ["The banner field must be a file of type: jpg, jpeg, png, mp4, mov."]
    assert errors["published_at"] == ["The published at field must match the format Y-m-d\\TH:i:s\\Z."]
    assert storage.objects == {}


@pytest.mark.anyio
async def test_create_page_rejects_binary_content(async_client: AsyncClient, admin_headers):
    resp = await async_client.post(
        "/api/pages",
        data=_form(content="abc\x00def"),
        files=_banner(),
        headers=admin_headers,
    )
    assert resp.status_code == 422
    assert resp.json()["errors"]["content"] == ["Content contains invalid characters or binary data"]


@pytest.mark.anyio
async def test_create_page_title_needs_alphanumerics(async_client: AsyncClient, admin_headers):
    resp = await async_client.post("/api/pages", data=_form(title="- & -"), files=_banner(), headers=admin_headers)
    assert resp.status_code == 422
    assert resp.json()["errors"]["title"] == ["The title must contain at least one alphanumeric character."]


@pytest.mark.anyio
async def test_create_page_duplicate_title(async_client: AsyncClient, db_session, admin_user, admin_headers):
    await create_page(db_session, author=admin_user, title="About Us")
    await db_session.commit()

    resp = await async_client.post("/api/pages", data=_form(title="about us"), files=_banner(), headers=admin_headers)
    assert resp.status_code == 422
    assert resp.json()["errors"]["title"] == ["A page with this title already exists."]


@pytest.mark.anyio
async def test_create_page_without_published_at_is_draft(async_client: AsyncClient, admin_headers):
    form = _form()
    form.pop("published_at")
    resp = await async_client.post("/api/pages", data=form, files=_banner(), headers=admin_headers)
    assert resp.status_code == 201
    assert resp.json()["data"]["published_at"] is None

    listing = await async_client.get("/api/pages")
    assert listing.json()["data"] == []


@pytest.mark.anyio
async def test_create_page_idempotency_key_replays(async_client: AsyncClient, admin_headers, db_session, redis_client):
    headers = {**admin_headers, "Idempotency-Key": "page-create-1"}
    first = await async_client.post("/api/pages", data=_form(), files=_banner(), headers=headers)
    second = await async_client.post("/api/pages", data=_form(), files=_banner(), headers=headers)

    assert first.status_code == second.status_code == 201
    assert first.json() == second.json()
    count = len((await db_session.execute(select(Page))).scalars().all())
    assert count == 1


# ─────────────────────────────────────────────────────────────
# 🛠️ Update
# ─────────────────────────────────────────────────────────────
@pytest.mark.anyio
async def test_update_page_title_regenerates_slug(async_client: AsyncClient, db_session, admin_user, admin_headers):
    page = await create_page(db_session, author=admin_user, title="Old Title")
    await db_session.commit()

    resp = await async_client.put(f"/api/pages/{page.id}", data={"title": "Fresh Title"}, headers=admin_headers)
    assert resp.status_code == 200, resp.text
    assert resp.json()["message"] == "Page updated successfully"
    data = resp.json()["data"]
    assert data["title"] == "Fresh Title"
    assert data["slug"] == "fresh-title"
    assert data["content"] == "Body text"


@pytest.mark.anyio
async def test_update_page_same_title_is_allowed(async_client: AsyncClient, db_session, admin_user, admin_headers):
    page = await create_page(db_session, author=admin_user, title="Keep Me")
    await db_session.commit()

    resp = await async_client.patch(f"/api/pages/{page.id}", json={"title": "Keep Me"}, headers=admin_headers)
    assert resp.status_code == 200
    assert resp.json()["data"]["slug"] == "keep-me"


@pytest.mark.anyio
async def test_update_page_title_conflict(async_client: AsyncClient, db_session, admin_user, admin_headers):
    await create_page(db_session, author=admin_user, title="Taken")
    page = await create_page(db_session, author=admin_user, title="Mine")
    await db_session.commit()

    resp = await async_client.put(f"/api/pages/{page.id}", json={"title": "Taken"}, headers=admin_headers)
    assert resp.status_code == 422
    assert resp.json()["errors"] == {"title": ["A page with this title already exists."]}


@pytest.mark.anyio
async def test_update_page_replaces_banner(async_client: AsyncClient, db_session, admin_user, admin_headers, storage):
    page = await create_page(db_session, author=admin_user, title="Banner Swap", storage=storage)
    await db_session.commit()
    old_key = page.banner_path

    resp = await async_client.put(
        f"/api/pages/{page.id}",
        files=_banner("clip.mov", b"moov", "video/quicktime"),
        headers=admin_headers,
    )
    assert resp.status_code == 200, resp.text
    data = resp.json()["data"]
    assert data["banner_type"] == "video"
    assert old_key not in storage.objects
    assert old_key in storage.deleted
    assert data["banner_path"].endswith(".mov")


@pytest.mark.anyio
async def test_update_page_published_at(async_client: AsyncClient, db_session, admin_user, admin_headers):
    page = await create_page(db_session, author=admin_user, title="Timed", published_at=PAST)
    await db_session.commit()

    bad = await async_client.put(f"/api/pages/{page.id}", data={"published_at": "not a date"}, headers=admin_headers)
    assert bad.status_code == 422
    assert bad.json()["errors"] == {"published_at": ["Invalid date format"]}

    cleared = await async_client.put(f"/api/pages/{page.id}", data={"published_at": ""}, headers=admin_headers)
    assert cleared.status_code == 200
    assert cleared.json()["data"]["published_at"] is None

    lenient = await async_client.put(
        f"/api/pages/{page.id}", data={"published_at": "2024-02-03 04:05:06"}, headers=admin_headers
    )
    assert lenient.status_code == 200
    assert lenient.json()["data"]["published_at"].startswith("2024-02-03T04:05:06")


@pytest.mark.anyio
async def test_update_page_field_errors(async_client: AsyncClient, db_session, admin_user, admin_headers):
    page = await create_page(db_session, author=admin_user, title="Strict")
    await db_session.commit()

    resp = await async_client.put(f"/api/pages/{page.id}", json={"title": "x" * 256}, headers=admin_headers)
    assert resp.json()["errors"] == {"title": ["The title must not exceed 255 characters"]}

    resp = await async_client.put(f"/api/pages/{page.id}", json={"title": "Hi <there>"}, headers=admin_headers)
    assert resp.json()["errors"] == {"title": ["The title contains invalid characters"]}

    resp = await async_client.put(
        f"/api/pages/{page.id}",
        files={"content": ("content.txt", b"hello", "text/plain")},
        headers=admin_headers,
    )
    assert resp.status_code == 422
    assert resp.json()["errors"] == {"content": ["Content field cannot be a file"]}


@pytest.mark.anyio
async def test_update_page_without_changes(async_client: AsyncClient, db_session, admin_user, admin_headers):
    page = await create_page(db_session, author=admin_user, title="Untouched")
    await db_session.commit()

    resp = await async_client.put(f"/api/pages/{page.id}", json={}, headers=admin_headers)
    assert resp.status_code == 422
    assert resp.json() == {"status": "error", "message": "No data provided for update"}


@pytest.mark.anyio
async def test_update_page_not_found_before_policy(async_client: AsyncClient, user_headers):
    resp = await async_client.put("/api/pages/999999", json={"title": "Nope"}, headers=user_headers)
    assert resp.status_code == 404
    assert resp.json()["message"] == "Page not found"


@pytest.mark.anyio
async def test_update_page_forbidden_for_normal_user(async_client: AsyncClient, db_session, admin_user, user_headers):
    page = await create_page(db_session, author=admin_user, title="Guarded")
    await db_session.commit()

    resp = await async_client.put(f"/api/pages/{page.id}", json={"title": "Mine Now"}, headers=user_headers)
    assert resp.status_code == 403
    assert resp.json()["message"] == "You are not authorized to update this page"


# ─────────────────────────────────────────────────────────────
# 🗑️ Delete
# ─────────────────────────────────────────────────────────────
@pytest.mark.anyio
async def test_delete_page(async_client: AsyncClient, db_session, admin_user, admin_headers, storage):
    page = await create_page(db_session, author=admin_user, title="Gone Soon", storage=storage)
    await db_session.commit()
    page_id, key = page.id, page.banner_path

    resp = await async_client.delete(f"/api/pages/{page_id}", headers=admin_headers)
    assert resp.status_code == 200
    assert resp.json() == {"status": "success", "message": "Page deleted successfully"}
    assert key not in storage.objects

    db_session.expunge_all()
    assert (await db_session.execute(select(Page).where(Page.id == page_id))).scalar_one_or_none() is None


@pytest.mark.anyio
async def test_delete_page_missing_banner_still_deletes(async_client: AsyncClient, db_session, admin_user, admin_headers):
    page = await create_page(db_session, author=admin_user, title="No Banner Object")
    await db_session.commit()

    resp = await async_client.delete(f"/api/pages/{page.id}", headers=admin_headers)
    assert resp.status_code == 200


@pytest.mark.anyio
async def test_delete_page_forbidden_for_normal_user(async_client: AsyncClient, db_session, admin_user, user_headers):
    page = await create_page(db_session, author=admin_user, title="Protected")
    await db_session.commit()

    resp = await async_client.delete(f"/api/pages/{page.id}", headers=user_headers)
    assert resp.status_code == 403
    assert resp.json()["message"] == "You are not authorized to delete this page"


@pytest.mark.anyio
async def test_page_id_beyond_bigint_is_not_found(async_client: AsyncClient, admin_headers):
    huge = "99999999999999999999"
    resp = await async_client.put(f"/api/pages/{huge}", data={"title": "Anything"}, headers=admin_headers)
    assert resp.status_code == 404
    assert resp.json() == {"status": "error", "message": "Page not found"}

    assert (await async_client.delete(f"/api/pages/{huge}", headers=admin_headers)).status_code == 404
