# training_service/core/dependencies.py

import logging
from typing import Optional

from fastapi import Depends, Header, Request
from sqlalchemy.orm import Session

from training_service.core.database import get_db
from training_service.core.exceptions import AuthenticationError, ForbiddenError
from training_service.core.security import decode_token, extract_token
from training_service.db.result_store import ResultStore
from training_service.services.access_policy import AccessPolicy, Principal
from training_service.services.sync_service import SyncQueue
from training_service.services.user_service_client import UserServiceClient

logger = logging.getLogger(__name__)


def get_credential(
    authorization: Optional[str] = Header(None),
    x_auth_token: Optional[str] = Header(None),
) -> str:
    """FastAPI dependency: the caller's raw bearer token."""
    token = extract_token(authorization, x_auth_token)
    if not token:
        raise AuthenticationError("No token provided, access denied")
    return token


def get_current_principal(credential: str = Depends(get_credential)) -> Principal:
    """FastAPI dependency: decode the token into the authenticated caller."""
    payload = decode_token(credential)
    # Tokens from the user service nest the claims under "user"
    claims = payload.get("user") if isinstance(payload.get("user"), dict) else payload

    user_id = claims.get("user_id", claims.get("id"))
    role = claims.get("role")
    if user_id is None or not role:
        logger.error(f"Token payload missing user id or role: keys={list(claims.keys())}")
        raise AuthenticationError("Token is invalid")
    if claims.get("active") is False:
        raise ForbiddenError("The user account is inactive")

    try:
        return Principal(id=int(user_id), role=str(role), email=claims.get("email"))
    except (TypeError, ValueError):
        raise AuthenticationError("Token is invalid")


def get_sync_queue(request: Request) -> SyncQueue:
    return request.app.state.sync_queue


def get_user_service(request: Request) -> UserServiceClient:
    return request.app.state.user_service


def get_access_policy(user_service: UserServiceClient = Depends(get_user_service)) -> AccessPolicy:
    return AccessPolicy(user_service)


def get_result_store(
    db: Session = Depends(get_db),
    sync_queue: SyncQueue = Depends(get_sync_queue),
    user_service: UserServiceClient = Depends(get_user_service),
) -> ResultStore:
    return ResultStore(db, sync_queue=sync_queue, user_service=user_service)
