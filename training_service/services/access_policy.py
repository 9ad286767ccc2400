# services/access_policy.py
"""
Who may do what with a test result.

All role checks for test results go through ``AccessPolicy``. Decisions that
depend on team membership are delegated to the user service; if it cannot
answer, the policy raises ``PolicyUndecidableError`` instead of allowing.
"""
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from training_service.core.exceptions import ForbiddenError, PolicyUndecidableError
from training_service.services.user_service_client import UserServiceClient, UserServiceError

logger = logging.getLogger(__name__)

ROLE_ADMIN = "admin"
ROLE_TEAM_ADMIN = "team_admin"
ROLE_COACH = "coach"

UNRESTRICTED_ROLES = (ROLE_ADMIN, ROLE_TEAM_ADMIN)


class Action(str, Enum):
    READ = "read"
    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"


SELF_ACTIONS = (Action.READ, Action.CREATE, Action.UPDATE)
CREATOR_ACTIONS = (Action.UPDATE, Action.DELETE)


@dataclass(frozen=True)
class Principal:
    """The authenticated caller."""
    id: int
    role: str
    email: Optional[str] = None


@dataclass(frozen=True)
class Target:
    """The record (or would-be record) an action applies to."""
    user_id: Optional[int] = None
    team_id: Optional[int] = None
    created_by: Optional[int] = None


@dataclass(frozen=True)
class AccessDecision:
    allowed: bool
    reason: str

    def __bool__(self) -> bool:
        return self.allowed


def allow(reason: str) -> AccessDecision:
    return AccessDecision(True, reason)


def deny(reason: str) -> AccessDecision:
    return AccessDecision(False, reason)


class AccessPolicy:
    def __init__(self, user_service: UserServiceClient):
        self.user_service = user_service

    async def decide(self, actor: Principal, action: Action, target: Target, credential: Optional[str]) -> AccessDecision:
        if actor.role in UNRESTRICTED_ROLES:
            return allow(f"role {actor.role}")

        if target.user_id is not None and target.user_id == actor.id and action in SELF_ACTIONS:
            return allow("own record")

        if target.created_by is not None and target.created_by == actor.id and action in CREATOR_ACTIONS:
            return allow("record creator")

        if actor.role == ROLE_COACH:
            if target.team_id is None:
                return deny("Coaches can only access results recorded for a team")
            if await self._team_access(actor, target.team_id, credential):
                return allow(f"coach of team {target.team_id}")
            return deny("You do not have access to this team")

        return deny("You do not have permission to access this test result")

    async def decide_team(self, actor: Principal, team_id: int, credential: Optional[str]) -> AccessDecision:
        """Team-scoped reads such as team statistics: team staff and team members."""
        if actor.role in UNRESTRICTED_ROLES:
            return allow(f"role {actor.role}")
        if await self._team_access(actor, team_id, credential):
            return allow(f"member of team {team_id}")
        return deny("You do not have access to this team")

    async def decide_history(self, actor: Principal, subject_user_id: int, credential: Optional[str]) -> AccessDecision:
        """A user's test history: self, unrestricted roles, or a coach of any of the user's teams."""
        if actor.role in UNRESTRICTED_ROLES:
            return allow(f"role {actor.role}")
        if actor.id == subject_user_id:
            return allow("own history")
        if actor.role != ROLE_COACH:
            return deny("You do not have permission to view test history for this user")

        token = self._require_credential(credential)
        try:
            subject = await self.user_service.get_user(subject_user_id, token)
        except UserServiceError as e:
            logger.error(f"Could not load teams for user {subject_user_id}: {e}")
            raise PolicyUndecidableError() from e

        for team in subject.teams:
            if await self._team_access(actor, team.id, token):
                return allow(f"coach of team {team.id}")
        return deny("You do not have permission to view test history for this user")

    async def enforce(self, actor: Principal, action: Action, target: Target, credential: Optional[str]) -> AccessDecision:
        decision = await self.decide(actor, action, target, credential)
        return self._raise_if_denied(actor, decision)

    async def enforce_team(self, actor: Principal, team_id: int, credential: Optional[str]) -> AccessDecision:
        return self._raise_if_denied(actor, await self.decide_team(actor, team_id, credential))

    async def enforce_history(self, actor: Principal, subject_user_id: int, credential: Optional[str]) -> AccessDecision:
        return self._raise_if_denied(actor, await self.decide_history(actor, subject_user_id, credential))

    # ------------------------------------------------------------------

    async def _team_access(self, actor: Principal, team_id: int, credential: Optional[str]) -> bool:
        token = self._require_credential(credential)
        try:
            return await self.user_service.check_team_access(actor.id, team_id, token)
        except UserServiceError as e:
            logger.error(f"Team access check failed for user {actor.id}, team {team_id}: {e}")
            raise PolicyUndecidableError() from e

    @staticmethod
    def _require_credential(credential: Optional[str]) -> str:
        if not credential:
            # Nothing to ask the user service with
            raise PolicyUndecidableError("Could not verify team access without a credential")
        return credential

    @staticmethod
    def _raise_if_denied(actor: Principal, decision: AccessDecision) -> AccessDecision:
        if not decision.allowed:
            logger.info(f"Access denied for user {actor.id} ({actor.role}): {decision.reason}")
            raise ForbiddenError(decision.reason)
        return decision
