from datetime import datetime, timedelta, timezone

import pytest
import pytest_asyncio
from httpx import AsyncClient
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from boutique.config.settings import get_settings
from boutique.dao import RefreshTokenDAO
from boutique.models import RefreshToken, User
from boutique.utils.auth import (
    create_refresh_token,
    get_password_hash,
    is_refresh_token_well_formed,
    save_refresh_token,
)


@pytest_asyncio.fixture
async def owner(db_session: AsyncSession) -> User:
    user = User(email="owner@example.com", nom="Owner", roles=[], password=get_password_hash("secret123"))
    db_session.add(user)
    await db_session.commit()
    return user


@pytest_asyncio.fixture
async def token_rows(db_session: AsyncSession, owner: User) -> dict:
    now = datetime.now(timezone.utc)
    rows = {
        "active": RefreshToken(
            user_id=owner.id,
            token=create_refresh_token(),
            expires_at=now + timedelta(days=30),
            ip_address="10.0.0.1",
        ),
        "expired": RefreshToken(
            user_id=owner.id,
            token=create_refresh_token(),
            expires_at=now - timedelta(days=1),
            ip_address="10.0.0.1",
        ),
        "revoked": RefreshToken(
            user_id=owner.id,
            token=create_refresh_token(),
            expires_at=now + timedelta(days=30),
            is_revoked=True,
            ip_address="10.0.0.2",
        ),
    }
    db_session.add_all(rows.values())
    await db_session.commit()
    return {name: row.token for name, row in rows.items()}


def test_refresh_token_shape():
    token = create_refresh_token()
    assert len(token) == 128
    assert is_refresh_token_well_formed(token)
    assert token != create_refresh_token()
    assert not is_refresh_token_well_formed("A" * 128)
    assert not is_refresh_token_well_formed("abc")
    assert not is_refresh_token_well_formed(None)


def test_user_roles_always_include_default():
    user = User(email="r@example.com", nom="R", roles=["ROLE_ADMIN", "ROLE_USER", "ROLE_ADMIN"])
    assert user.get_roles() == ["ROLE_ADMIN", "ROLE_USER"]
    assert user.has_role("ROLE_USER")

    bare = User(email="b@example.com", nom="B", roles=[])
    assert bare.get_roles() == ["ROLE_USER"]
    assert not bare.has_role("ROLE_ADMIN")


def test_refresh_token_validity():
    now = datetime.now(timezone.utc)
    live = RefreshToken(token="a" * 128, expires_at=now + timedelta(days=1), is_revoked=False)
    assert live.is_valid(now)

    revoked = RefreshToken(token="b" * 128, expires_at=now + timedelta(days=1), is_revoked=True)
    assert not revoked.is_valid(now)

    # naive values as read back from SQLite are treated as UTC
    expired = RefreshToken(token="c" * 128, expires_at=(now - timedelta(seconds=1)).replace(tzinfo=None))
    expired.is_revoked = False
    assert not expired.is_valid(now)


class TestRefreshTokenDAO:
    @pytest.mark.asyncio
    async def test_save_refresh_token_records_client(self, db_session: AsyncSession, owner: User):
        token = create_refresh_token()
        record = await save_refresh_token(
            owner.id, token, db_session, get_settings(), ip_address="192.168.1.9", user_agent="pytest"
        )
        await db_session.commit()

        assert record.is_valid()
        found = await RefreshTokenDAO.find_valid_token(token, db_session)
        assert found is not None
        assert found.user.email == "owner@example.com"
        assert found.ip_address == "192.168.1.9"
        assert found.user_agent == "pytest"

    @pytest.mark.asyncio
    async def test_find_valid_token_skips_expired_and_revoked(self, db_session: AsyncSession, token_rows: dict):
        assert await RefreshTokenDAO.find_valid_token(token_rows["active"], db_session) is not None
        assert await RefreshTokenDAO.find_valid_token(token_rows["expired"], db_session) is None
        assert await RefreshTokenDAO.find_valid_token(token_rows["revoked"], db_session) is None
        assert await RefreshTokenDAO.find_valid_token("0" * 128, db_session) is None

    @pytest.mark.asyncio
    async def test_find_by_user_and_count(self, db_session: AsyncSession, owner: User, token_rows: dict):
        tokens = await RefreshTokenDAO.find_by_user(owner, db_session)
        assert [t.token for t in tokens] == [token_rows["active"]]
        assert await RefreshTokenDAO.count_active_tokens_by_user(owner, db_session) == 1

    @pytest.mark.asyncio
    async def test_revoke_token_respects_owner(self, db_session: AsyncSession, owner: User, token_rows: dict):
        assert await RefreshTokenDAO.revoke_token(token_rows["active"], db_session, user_id=owner.id + 1) is False
        assert await RefreshTokenDAO.find_valid_token(token_rows["active"], db_session) is not None

        assert await RefreshTokenDAO.revoke_token(token_rows["active"], db_session, user_id=owner.id) is True
        await db_session.commit()
        assert await RefreshTokenDAO.find_valid_token(token_rows["active"], db_session) is None

    @pytest.mark.asyncio
    async def test_revoke_all_user_tokens(self, db_session: AsyncSession, owner: User, token_rows: dict):
        # the already revoked row is not counted again
        assert await RefreshTokenDAO.revoke_all_user_tokens(owner, db_session) == 2
        await db_session.commit()
        assert await RefreshTokenDAO.count_active_tokens_by_user(owner, db_session) == 0

    @pytest.mark.asyncio
    async def test_delete_expired_tokens(self, db_session: AsyncSession, token_rows: dict):
        assert await RefreshTokenDAO.delete_expired_tokens(db_session) == 2
        await db_session.commit()

        remaining = (await db_session.execute(select(RefreshToken.token))).scalars().all()
        assert remaining == [token_rows["active"]]

    @pytest.mark.asyncio
    async def test_statistics(self, db_session: AsyncSession, token_rows: dict):
        stats = await RefreshTokenDAO.get_statistics(db_session)
        assert stats == {"total": 3, "active": 1, "expired": 1, "revoked": 1, "usage_rate": 33.33}

    @pytest.mark.asyncio
    async def test_statistics_when_empty(self, db_session: AsyncSession):
        stats = await RefreshTokenDAO.get_statistics(db_session)
        assert stats["total"] == 0
        assert stats["usage_rate"] == 0

    @pytest.mark.asyncio
    async def test_find_by_ip_address(self, db_session: AsyncSession, token_rows: dict):
        tokens = await RefreshTokenDAO.find_by_ip_address("10.0.0.1", db_session)
        assert {t.token for t in tokens} == {token_rows["active"], token_rows["expired"]}

        limited = await RefreshTokenDAO.find_by_ip_address("10.0.0.1", db_session, limit=1)
        assert len(limited) == 1

        assert await RefreshTokenDAO.find_by_ip_address("172.16.0.1", db_session) == []


class TestAdminRoutes:
    @pytest.mark.asyncio
    async def test_admin_routes_require_admin_role(self, client: AsyncClient, auth_headers: dict):
        resp = await client.get("/admin/refresh-tokens/statistiques", headers=auth_headers)
        assert resp.status_code == 403
        assert resp.json() == {"success": False, "message": "Accès réservé aux administrateurs"}

        anonymous = await client.post("/admin/refresh-tokens/purge")
        assert anonymous.status_code == 401

    @pytest.mark.asyncio
    async def test_self_registered_admin_role_is_ignored(
        self, client: AsyncClient, create_user_via_api, login_via_api
    ):
        user = await create_user_via_api("intruder@example.com", roles=["ROLE_ADMIN", " ROLE_ADMIN ", "ROLE_EDITOR"])
        assert user["roles"] == ["ROLE_USER", "ROLE_EDITOR"]

        body = await login_via_api("intruder@example.com")
        headers = {"Authorization": f"Bearer {body['token']}"}
        for method, path in (
            ("get", "/admin/refresh-tokens/statistiques"),
            ("post", "/admin/refresh-tokens/purge"),
            ("get", f"/admin/refresh-tokens/users/{user['id']}"),
            ("get", "/admin/refresh-tokens/ip/127.0.0.1"),
        ):
            resp = await getattr(client, method)(path, headers=headers)
            assert resp.status_code == 403, path

    @pytest.mark.asyncio
    async def test_statistics_and_purge(self, client: AsyncClient, admin_headers: dict, token_rows: dict):
        stats = await client.get("/admin/refresh-tokens/statistiques", headers=admin_headers)
        assert stats.status_code == 200
        body = stats.json()
        # three seeded rows plus the admin's own login
        assert body["total"] == 4
        assert body["active"] == 2

        purge = await client.post("/admin/refresh-tokens/purge", headers=admin_headers)
        assert purge.status_code == 200
        assert purge.json()["deleted"] == 2

        after = await client.get("/admin/refresh-tokens/statistiques", headers=admin_headers)
        assert after.json()["total"] == 2
        assert after.json()["expired"] == 0

    @pytest.mark.asyncio
    async def test_user_tokens_listing_and_revoke(
        self, client: AsyncClient, admin_headers: dict, owner: User, token_rows: dict
    ):
        listing = await client.get(f"/admin/refresh-tokens/users/{owner.id}", headers=admin_headers)
        assert listing.status_code == 200
        body = listing.json()
        assert body["active_count"] == 1
        assert len(body["data"]) == 1
        assert "token" not in body["data"][0]

        revoke = await client.post(f"/admin/refresh-tokens/users/{owner.id}/revoke", headers=admin_headers)
        assert revoke.status_code == 200
        assert revoke.json()["revoked"] == 2

        after = await client.get(f"/admin/refresh-tokens/users/{owner.id}", headers=admin_headers)
        assert after.json()["active_count"] == 0

        missing = await client.get("/admin/refresh-tokens/users/999999", headers=admin_headers)
        assert missing.status_code == 404

    @pytest.mark.asyncio
    async def test_tokens_by_ip(self, client: AsyncClient, admin_headers: dict, token_rows: dict):
        resp = await client.get("/admin/refresh-tokens/ip/10.0.0.2", headers=admin_headers)
        assert resp.status_code == 200
        assert resp.json()["count"] == 1
