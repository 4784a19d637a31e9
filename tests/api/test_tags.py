"""Tests for tag endpoints."""
from httpx import AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from models.user import User
from tests.factories import auth_headers, make_tag


async def test__list_tags__sorting(client: AsyncClient, db_session: AsyncSession) -> None:
    await make_tag(db_session, "Zebra", usage_count=5)
    await make_tag(db_session, "Apple", usage_count=1)
    await make_tag(db_session, "Mango", usage_count=5)

    popular = (await client.get("/tags/")).json()["tags"]
    alphabetical = (await client.get("/tags/?sort=alphabetical")).json()["tags"]

    assert [t["name"] for t in popular] == ["Mango", "Zebra", "Apple"]
    assert [t["name"] for t in alphabetical] == ["Apple", "Mango", "Zebra"]


async def test__create_tag(client: AsyncClient, test_user: User) -> None:
    response = await client.post(
        "/tags/", json={"name": "  Machine Learning "}, headers=auth_headers(test_user),
    )

    assert response.status_code == 201
    data = response.json()
    assert data["name"] == "Machine Learning"
    assert data["slug"] == "machine-learning"
    assert data["usage_count"] == 0


async def test__create_tag__requires_authentication(client: AsyncClient) -> None:
    response = await client.post("/tags/", json={"name": "Anonymous"})
    assert response.status_code == 401


async def test__create_tag__duplicate_name_is_422(
    client: AsyncClient,
    db_session: AsyncSession,
    test_user: User,
) -> None:
    await make_tag(db_session, "Writing")

    response = await client.post(
        "/tags/", json={"name": "WRITING"}, headers=auth_headers(test_user),
    )

    assert response.status_code == 422
    assert response.json()["errors"] == {"name": ["Name has already been taken"]}


async def test__create_tag__blank_name_is_422(client: AsyncClient, test_user: User) -> None:
    response = await client.post("/tags/", json={"name": "   "}, headers=auth_headers(test_user))
    assert response.status_code == 422
    assert "name" in response.json()["errors"]


async def test__get_tag__by_id_or_slug(client: AsyncClient, db_session: AsyncSession) -> None:
    tag = await make_tag(db_session, "Code Review")

    by_slug = await client.get("/tags/code-review")
    by_id = await client.get(f"/tags/{tag.id}")

    assert by_slug.status_code == 200
    assert by_slug.json()["id"] == tag.id
    assert by_id.json()["slug"] == "code-review"


async def test__get_tag__unknown_is_404(client: AsyncClient) -> None:
    response = await client.get("/tags/nope")
    assert response.status_code == 404
    assert response.json() == {"detail": "Tag not found"}
