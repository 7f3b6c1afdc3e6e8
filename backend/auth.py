"""Bearer-token authentication: resolves the calling user for each request."""
import secrets

from fastapi import Depends, HTTPException
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from db import get_repository
from models import User
from repository import Repository

bearer = HTTPBearer(auto_error=False)


def new_api_token() -> str:
    return secrets.token_urlsafe(32)


def get_current_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer),
    repo: Repository = Depends(get_repository),
) -> User:
    if credentials is None or not credentials.credentials:
        raise HTTPException(
            status_code=401, detail="Not authenticated", headers={"WWW-Authenticate": "Bearer"}
        )

    users = repo.list(User, api_token=credentials.credentials)
    if not users:
        raise HTTPException(
            status_code=401, detail="Invalid token", headers={"WWW-Authenticate": "Bearer"}
        )
    return users[0]
