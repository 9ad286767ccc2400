# services/user_service_client.py
"""
Client for the user service: the authority on team membership and the
owner of user profile statistics.

``UserServiceClient`` is the interface the access policy and the sync
queue depend on. ``HttpUserServiceClient`` talks to the real service over
``httpx``; tests substitute an in-memory implementation.
"""
import os
import logging
from typing import Any, Dict, List, Optional

import httpx
from dotenv import load_dotenv
from pydantic import BaseModel

load_dotenv()
logger = logging.getLogger(__name__)

USER_SERVICE_URL = os.getenv("USER_SERVICE_URL", "http://user-service:3001")
USER_SERVICE_TIMEOUT = float(os.getenv("USER_SERVICE_TIMEOUT", "5"))


class UserServiceError(Exception):
    """The user service could not answer (transport failure or non-2xx)."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class TeamRef(BaseModel):
    id: int
    name: Optional[str] = None

    model_config = {"extra": "ignore"}


class UserProfile(BaseModel):
    id: int
    teams: List[TeamRef] = []

    model_config = {"extra": "ignore"}


class UserServiceClient:
    """Interface for the remote user service."""

    async def get_user(self, user_id: int, token: str) -> UserProfile:
        raise NotImplementedError

    async def check_team_access(self, user_id: int, team_id: int, token: str) -> bool:
        raise NotImplementedError

    async def get_team_members(self, team_id: int, token: str) -> List[Dict[str, Any]]:
        raise NotImplementedError

    async def update_user_stats(self, user_id: int, data: Dict[str, Any], token: str) -> Any:
        raise NotImplementedError

    async def aclose(self) -> None:
        return None


class HttpUserServiceClient(UserServiceClient):
    def __init__(
        self,
        base_url: str = USER_SERVICE_URL,
        timeout: float = USER_SERVICE_TIMEOUT,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url
        self._client = httpx.AsyncClient(base_url=base_url, timeout=timeout, transport=transport)

    async def _request(self, method: str, path: str, token: str, **kwargs) -> Dict[str, Any]:
        headers = {"Authorization": f"Bearer {token}"}
        try:
            response = await self._client.request(method, path, headers=headers, **kwargs)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            logger.error(f"User service {method} {path} returned {e.response.status_code}")
            raise UserServiceError(
                f"User service responded with {e.response.status_code}",
                status_code=e.response.status_code,
            ) from e
        except httpx.HTTPError as e:
            logger.error(f"User service {method} {path} failed: {e!r}")
            raise UserServiceError(f"User service request failed: {e}") from e

        if not response.content:
            return {}
        try:
            return response.json()
        except ValueError as e:
            raise UserServiceError("User service returned a non-JSON body") from e

    async def get_user(self, user_id: int, token: str) -> UserProfile:
        body = await self._request("GET", f"/api/users/{user_id}", token)
        data = body.get("data") or {}
        data.setdefault("id", user_id)
        return UserProfile.model_validate(data)

    async def check_team_access(self, user_id: int, team_id: int, token: str) -> bool:
        body = await self._request("GET", f"/api/users/{user_id}/teams", token)
        teams = body.get("teams") or []
        return any(_same_id(team.get("id"), team_id) for team in teams)

    async def get_team_members(self, team_id: int, token: str) -> List[Dict[str, Any]]:
        body = await self._request("GET", f"/api/teams/{team_id}/members", token)
        return body.get("data") or []

    async def update_user_stats(self, user_id: int, data: Dict[str, Any], token: str) -> Any:
        body = await self._request("POST", f"/api/users/{user_id}/stats", token, json=data)
        return body.get("data")

    async def aclose(self) -> None:
        await self._client.aclose()


def _same_id(left: Any, right: Any) -> bool:
    try:
        return int(left) == int(right)
    except (TypeError, ValueError):
        return False
