# app/services/approval_poller.py

"""
Client side of the "waiting for approval" flow.

    unauthenticated -> checking -> pending_approval -> checking -> ... -> approved

`ApprovalStateMachine` holds the transitions and nothing else.
`ApprovalPoller` drives it: one check on start, then one every `interval`
seconds until approved, with an explicit stop so the timer never outlives
the waiting screen. `ApprovalStatusClient` is the HTTP fetcher for
GET /api/approval-status.

A failed check is "try again later": it never approves and never denies.
Only a sign-out (or an expired session) leaves `approved`.
"""

import asyncio
from contextlib import suppress
from enum import Enum
from typing import Awaitable, Callable, Optional

import httpx
from loguru import logger

from app.core.config import settings
from app.core.errors import SessionExpired, UpstreamError
from app.schemas.approval import ApprovalStatus

TRANSIENT_ERROR_MESSAGE = "Could not check approval status. Retrying shortly."


class ApprovalState(str, Enum):
    Unauthenticated = "unauthenticated"
    Checking = "checking"
    PendingApproval = "pending_approval"
    Approved = "approved"


class ApprovalStateMachine:
    def __init__(self):
        self.state = ApprovalState.Unauthenticated
        self.status: Optional[ApprovalStatus] = None
        self.error: Optional[str] = None
        self._resume_state = ApprovalState.Checking

    def session_started(self) -> ApprovalState:
        if self.state == ApprovalState.Unauthenticated:
            self.state = ApprovalState.Checking
            self._resume_state = ApprovalState.Checking
        return self.state

    def begin_check(self) -> bool:
        """Moves into `checking`; False when no check should run."""
        if self.state == ApprovalState.PendingApproval:
            self._resume_state = ApprovalState.PendingApproval
            self.state = ApprovalState.Checking
            return True
        return self.state == ApprovalState.Checking

    def record_status(self, status: ApprovalStatus) -> ApprovalState:
        if self.state != ApprovalState.Checking:
            return self.state

        self.status = status
        self.error = None
        self.state = ApprovalState.Approved if status.is_approved else ApprovalState.PendingApproval
        return self.state

    def record_failure(self, message: str = TRANSIENT_ERROR_MESSAGE) -> ApprovalState:
        if self.state == ApprovalState.Checking:
            self.state = self._resume_state
        self.error = message
        return self.state

    def session_ended(self) -> ApprovalState:
        self.state = ApprovalState.Unauthenticated
        self.status = None
        self.error = None
        return self.state


class ApprovalPoller:
    def __init__(
        self,
        fetch_status: Callable[[], Awaitable[ApprovalStatus]],
        interval: Optional[float] = None,
        machine: Optional[ApprovalStateMachine] = None,
    ):
        self.fetch_status = fetch_status
        self.interval = settings.APPROVAL_POLL_INTERVAL if interval is None else interval
        self.machine = machine or ApprovalStateMachine()
        self._task: Optional[asyncio.Task] = None
        self._lock = asyncio.Lock()
        self._approved = asyncio.Event()

    @property
    def state(self) -> ApprovalState:
        return self.machine.state

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def start(self):
        if self.running:
            return
        self.machine.session_started()
        self._task = asyncio.create_task(self._run())
        logger.info(f"Approval polling started ({self.interval}s interval)")

    async def _run(self):
        while True:
            state = await self.check_now()
            if state in (ApprovalState.Approved, ApprovalState.Unauthenticated):
                return
            await asyncio.sleep(self.interval)

    async def check_now(self) -> ApprovalState:
        """Runs one status check right away (the "check now" button)."""
        async with self._lock:
            if not self.machine.begin_check():
                return self.machine.state

            try:
                status = await self.fetch_status()
            except SessionExpired:
                logger.info("Session ended while waiting for approval")
                return self.machine.session_ended()
            except Exception as e:
                logger.warning(f"Approval check failed, will retry: {e}")
                return self.machine.record_failure()

            state = self.machine.record_status(status)
            if state == ApprovalState.Approved:
                logger.success("Account approved")
                self._approved.set()
            return state

    async def wait_until_approved(self, timeout: Optional[float] = None) -> bool:
        try:
            await asyncio.wait_for(self._approved.wait(), timeout)
            return True
        except asyncio.TimeoutError:
            return False

    async def stop(self):
        task, self._task = self._task, None
        if task and not task.done():
            task.cancel()
            with suppress(asyncio.CancelledError):
                await task
            logger.info("Approval polling stopped")

    async def sign_out(self):
        await self.stop()
        self.machine.session_ended()
        self._approved.clear()

    async def __aenter__(self) -> "ApprovalPoller":
        await self.start()
        return self

    async def __aexit__(self, *exc_info):
        await self.stop()


class ApprovalStatusClient:
    """Fetches approval status over HTTP with the user's session token."""

    def __init__(
        self,
        base_url: str,
        token: str,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url
        self.token = token
        self.timeout = timeout
        self._transport = transport

    async def __call__(self) -> ApprovalStatus:
        async with httpx.AsyncClient(base_url=self.base_url, timeout=self.timeout, transport=self._transport) as client:
            response = await client.get(
                "/api/approval-status",
                headers={"Authorization": f"Bearer {self.token}"},
            )

        if response.status_code == 401:
            raise SessionExpired("Session is no longer valid")
        if response.is_error:
            raise UpstreamError(f"Approval status check failed ({response.status_code})")
        return ApprovalStatus.model_validate(response.json())
