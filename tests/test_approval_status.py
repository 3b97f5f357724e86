from unittest.mock import AsyncMock

import pytest
from sqlalchemy.exc import SQLAlchemyError

from app.core.errors import UpstreamError
from app.core.security import create_session_token
from app.services.approval_service import get_approval_status
from app.services.identity_provider import Identity


@pytest.mark.asyncio
async def test_approval_status_requires_token(client):
    res = await client.get("/api/approval-status")
    assert res.status_code == 401


@pytest.mark.asyncio
async def test_approval_status_rejects_garbage_token(client):
    res = await client.get("/api/approval-status", headers={"Authorization": "Bearer not-a-jwt"})
    assert res.status_code == 401


@pytest.mark.asyncio
async def test_approval_status_rejects_unknown_identity(client):
    token = create_session_token("user_does_not_exist")
    res = await client.get("/api/approval-status", headers={"Authorization": f"Bearer {token}"})
    assert res.status_code == 401


@pytest.mark.asyncio
async def test_new_member_is_pending(client, make_user):
    user = await make_user(role="member", department_id=None)

    res = await client.get("/api/approval-status", headers=user.headers)

    assert res.status_code == 200
    body = res.json()
    assert body["isApproved"] is False
    assert body["role"] == "member"
    assert body["departmentId"] is None
    assert body["departmentName"] is None
    assert "lastChecked" in body


@pytest.mark.asyncio
async def test_assigned_member_is_approved_with_department_name(client, make_department, make_user):
    dept = await make_department("Water Board")
    user = await make_user(role="member", department_id=dept.id, position="Engineer")

    res = await client.get("/api/approval-status", headers=user.headers)

    assert res.status_code == 200
    body = res.json()
    assert body["isApproved"] is True
    assert body["departmentId"] == dept.id
    assert body["departmentName"] == "Water Board"
    assert body["position"] == "Engineer"


@pytest.mark.asyncio
async def test_missing_mirror_row_is_an_error_not_an_approval(client, make_user):
    user = await make_user(mirror=False)

    res = await client.get("/api/approval-status", headers=user.headers)

    assert res.status_code == 500
    assert res.json()["detail"] == "Failed to fetch user status"


@pytest.mark.asyncio
async def test_identity_provider_outage_is_500(client, make_user, identity_provider):
    user = await make_user()
    identity_provider.fail_reads = True

    res = await client.get("/api/approval-status", headers=user.headers)

    assert res.status_code == 500


@pytest.mark.asyncio
async def test_database_error_surfaces_as_upstream_error():
    session = AsyncMock()
    session.execute.side_effect = SQLAlchemyError("connection reset")
    identity = Identity(id="user_1", email_addresses=["a@example.com"])

    with pytest.raises(UpstreamError) as exc:
        await get_approval_status(session, identity)

    assert exc.value.message == "Failed to fetch user status"
