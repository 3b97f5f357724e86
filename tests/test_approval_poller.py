import asyncio
from datetime import datetime, timezone

import pytest
from httpx import ASGITransport

from app.core.errors import SessionExpired, UpstreamError
from app.core.security import create_session_token
from app.main import app
from app.schemas.approval import ApprovalStatus
from app.services.approval_poller import (
    TRANSIENT_ERROR_MESSAGE,
    ApprovalPoller,
    ApprovalState,
    ApprovalStateMachine,
    ApprovalStatusClient,
)


def status(approved: bool) -> ApprovalStatus:
    return ApprovalStatus(
        is_approved=approved,
        department_id="dept-1" if approved else None,
        department_name="Public Works" if approved else None,
        role="member",
        last_checked=datetime.now(timezone.utc),
    )


class ScriptedFetcher:
    """Returns (or raises) the scripted results in order, repeating the last."""

    def __init__(self, *results):
        self.results = list(results)
        self.calls = 0

    async def __call__(self):
        self.calls += 1
        result = self.results[0] if len(self.results) == 1 else self.results.pop(0)
        if isinstance(result, Exception):
            raise result
        return result


# ------------------------------------------------------------
# State machine
# ------------------------------------------------------------
def test_machine_walks_from_pending_to_approved():
    machine = ApprovalStateMachine()
    assert machine.state == ApprovalState.Unauthenticated

    machine.session_started()
    assert machine.state == ApprovalState.Checking

    assert machine.record_status(status(False)) == ApprovalState.PendingApproval
    assert machine.begin_check() is True
    assert machine.state == ApprovalState.Checking
    assert machine.record_status(status(True)) == ApprovalState.Approved


def test_failure_during_first_check_keeps_checking():
    machine = ApprovalStateMachine()
    machine.session_started()

    assert machine.record_failure() == ApprovalState.Checking
    assert machine.error == TRANSIENT_ERROR_MESSAGE


def test_failure_while_pending_returns_to_pending():
    machine = ApprovalStateMachine()
    machine.session_started()
    machine.record_status(status(False))
    machine.begin_check()

    assert machine.record_failure() == ApprovalState.PendingApproval


def test_approved_is_sticky_until_session_ends():
    machine = ApprovalStateMachine()
    machine.session_started()
    machine.record_status(status(True))

    assert machine.begin_check() is False
    assert machine.record_status(status(False)) == ApprovalState.Approved
    assert machine.record_failure() == ApprovalState.Approved

    assert machine.session_ended() == ApprovalState.Unauthenticated
    assert machine.status is None


def test_success_clears_previous_error():
    machine = ApprovalStateMachine()
    machine.session_started()
    machine.record_failure()
    machine.record_status(status(False))
    assert machine.error is None


# ------------------------------------------------------------
# Poller
# ------------------------------------------------------------
@pytest.mark.asyncio
async def test_poller_reaches_approved_after_department_assigned():
    fetch = ScriptedFetcher(status(False), status(True))

    async with ApprovalPoller(fetch, interval=0.01) as poller:
        assert await poller.wait_until_approved(timeout=1.0) is True
        assert poller.state == ApprovalState.Approved

    assert fetch.calls == 2
    assert poller.running is False


@pytest.mark.asyncio
async def test_poller_stops_polling_once_approved():
    fetch = ScriptedFetcher(status(True))
    poller = ApprovalPoller(fetch, interval=0.01)

    await poller.start()
    await poller.wait_until_approved(timeout=1.0)
    await asyncio.sleep(0.05)

    assert fetch.calls == 1
    await poller.stop()


@pytest.mark.asyncio
async def test_failed_checks_never_approve():
    fetch = ScriptedFetcher(UpstreamError("Failed to fetch user status"))
    poller = ApprovalPoller(fetch, interval=0.01)

    await poller.start()
    assert await poller.wait_until_approved(timeout=0.1) is False
    assert poller.state == ApprovalState.Checking
    assert poller.machine.error == TRANSIENT_ERROR_MESSAGE
    assert fetch.calls > 1

    await poller.stop()


@pytest.mark.asyncio
async def test_failure_then_success_recovers():
    fetch = ScriptedFetcher(status(False), RuntimeError("network down"), status(True))
    poller = ApprovalPoller(fetch, interval=0.01)

    await poller.start()
    assert await poller.wait_until_approved(timeout=1.0) is True
    assert poller.machine.error is None
    await poller.stop()


@pytest.mark.asyncio
async def test_stop_cancels_the_timer():
    fetch = ScriptedFetcher(status(False))
    poller = ApprovalPoller(fetch, interval=0.01)

    await poller.start()
    await asyncio.sleep(0.05)
    await poller.stop()
    calls = fetch.calls

    await asyncio.sleep(0.05)
    assert fetch.calls == calls
    assert poller.running is False
    assert poller.state == ApprovalState.PendingApproval


@pytest.mark.asyncio
async def test_manual_check_now_without_timer():
    fetch = ScriptedFetcher(status(False), status(True))
    poller = ApprovalPoller(fetch, interval=3600)
    poller.machine.session_started()

    assert await poller.check_now() == ApprovalState.PendingApproval
    assert await poller.check_now() == ApprovalState.Approved
    # already approved, no further fetch
    assert await poller.check_now() == ApprovalState.Approved
    assert fetch.calls == 2


@pytest.mark.asyncio
async def test_expired_session_goes_unauthenticated():
    fetch = ScriptedFetcher(status(False), SessionExpired("expired"))
    poller = ApprovalPoller(fetch, interval=0.01)

    await poller.start()
    for _ in range(100):
        if poller.state == ApprovalState.Unauthenticated:
            break
        await asyncio.sleep(0.01)

    assert poller.state == ApprovalState.Unauthenticated
    assert poller.running is False
    await poller.stop()


@pytest.mark.asyncio
async def test_sign_out_leaves_approved():
    fetch = ScriptedFetcher(status(True))
    poller = ApprovalPoller(fetch, interval=0.01)

    await poller.start()
    await poller.wait_until_approved(timeout=1.0)
    await poller.sign_out()

    assert poller.state == ApprovalState.Unauthenticated
    assert await poller.wait_until_approved(timeout=0.01) is False


# ------------------------------------------------------------
# HTTP fetcher against the real endpoint
# ------------------------------------------------------------
@pytest.mark.asyncio
async def test_status_client_reads_endpoint(client, make_department, make_user):
    dept = await make_department("Public Works")
    user = await make_user(role="member", department_id=dept.id)

    fetch = ApprovalStatusClient(
        "http://testserver",
        create_session_token(user.id),
        transport=ASGITransport(app=app),
    )
    result = await fetch()

    assert result.is_approved is True
    assert result.department_name == "Public Works"


@pytest.mark.asyncio
async def test_status_client_maps_401_to_session_expired(client):
    fetch = ApprovalStatusClient("http://testserver", "not-a-token", transport=ASGITransport(app=app))

    with pytest.raises(SessionExpired):
        await fetch()


@pytest.mark.asyncio
async def test_status_client_maps_500_to_upstream_error(client, make_user):
    user = await make_user(mirror=False)
    fetch = ApprovalStatusClient(
        "http://testserver",
        create_session_token(user.id),
        transport=ASGITransport(app=app),
    )

    with pytest.raises(UpstreamError):
        await fetch()
