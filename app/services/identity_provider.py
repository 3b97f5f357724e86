# app/services/identity_provider.py

"""
Identity provider boundary.

`IdentityProvider` is the interface the rest of the app depends on; the
FastAPI dependency `get_identity_provider` hands out the Clerk-backed client
and tests swap in an in-memory fake.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

import httpx
from loguru import logger
from pydantic import BaseModel, Field

from app.core.errors import UpstreamError


class Identity(BaseModel):
    id: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    username: Optional[str] = None
    email_addresses: List[str] = Field(default_factory=list)
    public_metadata: Dict[str, Any] = Field(default_factory=dict)

    @property
    def primary_email(self) -> Optional[str]:
        return self.email_addresses[0] if self.email_addresses else None

    @property
    def full_name(self) -> Optional[str]:
        parts = [p for p in (self.first_name, self.last_name) if p]
        if parts:
            return " ".join(parts)
        return self.username

    @classmethod
    def from_clerk(cls, data: Dict[str, Any]) -> "Identity":
        return cls(
            id=data["id"],
            first_name=data.get("first_name"),
            last_name=data.get("last_name"),
            username=data.get("username"),
            email_addresses=[
                e["email_address"]
                for e in data.get("email_addresses") or []
                if e.get("email_address")
            ],
            public_metadata=data.get("public_metadata") or {},
        )


class IdentityProvider(ABC):
    @abstractmethod
    async def get_user(self, user_id: str) -> Optional[Identity]:
        ...

    @abstractmethod
    async def list_users(self) -> List[Identity]:
        ...

    @abstractmethod
    async def update_user(
        self,
        user_id: str,
        first_name: Optional[str] = None,
        last_name: Optional[str] = None,
        public_metadata: Optional[Dict[str, Any]] = None,
    ) -> Identity:
        ...

    @abstractmethod
    async def delete_user(self, user_id: str) -> None:
        ...


class ClerkIdentityProvider(IdentityProvider):
    """Talks to the Clerk Backend API."""

    def __init__(
        self,
        secret_key: str,
        api_url: str = "https://api.clerk.com/v1",
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.api_url = api_url.rstrip("/")
        self.timeout = timeout
        self._headers = {"Authorization": f"Bearer {secret_key}"}
        self._transport = transport

    async def _request(self, method: str, path: str, json: Optional[dict] = None, params: Optional[dict] = None):
        async with httpx.AsyncClient(
            base_url=self.api_url,
            headers=self._headers,
            timeout=self.timeout,
            transport=self._transport,
        ) as client:
            try:
                response = await client.request(method, path, json=json, params=params)
            except httpx.HTTPError as e:
                logger.error(f"Identity provider unreachable ({method} {path}): {e}")
                raise UpstreamError("Identity provider unavailable") from e

        if response.status_code == 404:
            return None
        if response.is_error:
            logger.error(f"Identity provider error {response.status_code} on {method} {path}: {response.text}")
            raise UpstreamError(f"Identity provider returned {response.status_code}")

        return response.json() if response.content else {}

    async def get_user(self, user_id: str) -> Optional[Identity]:
        data = await self._request("GET", f"/users/{user_id}")
        return Identity.from_clerk(data) if data else None

    async def list_users(self) -> List[Identity]:
        users: List[Identity] = []
        offset = 0
        page_size = 100
        while True:
            page = await self._request("GET", "/users", params={"limit": page_size, "offset": offset}) or []
            users.extend(Identity.from_clerk(u) for u in page)
            if len(page) < page_size:
                return users
            offset += page_size

    async def update_user(
        self,
        user_id: str,
        first_name: Optional[str] = None,
        last_name: Optional[str] = None,
        public_metadata: Optional[Dict[str, Any]] = None,
    ) -> Identity:
        body: Dict[str, Any] = {}
        if first_name is not None:
            body["first_name"] = first_name
        if last_name is not None:
            body["last_name"] = last_name
        if public_metadata is not None:
            body["public_metadata"] = public_metadata

        data = await self._request("PATCH", f"/users/{user_id}", json=body)
        if data is None:
            raise UpstreamError(f"Identity {user_id} not found")
        return Identity.from_clerk(data)

    async def delete_user(self, user_id: str) -> None:
        data = await self._request("DELETE", f"/users/{user_id}")
        if data is None:
            raise UpstreamError(f"Identity {user_id} not found")
