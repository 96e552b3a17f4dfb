"""Bearer-token guard for the `/study-sessions` routes.

Tokens are the HS256 JWTs minted by `AuthService.authenticate`. Every
failure (missing header, bad signature, expiry, unknown account) ends in
a 401 so clients only have one thing to handle: log in again.
"""

from typing import Optional

from fastapi import Depends, HTTPException, Security
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
import jwt
from sqlmodel import Session
from .config import settings
from .database import get_session
from . import models, repositories

bearer_scheme = HTTPBearer(auto_error=False)


def decode_token(token: str) -> dict:
    """Verify `token` against the configured secret and return its claims."""
    try:
        return jwt.decode(token, settings.JWT_SECRET, algorithms=[settings.JWT_ALGORITHM])
    except jwt.ExpiredSignatureError:
        raise HTTPException(status_code=401, detail='token expired')
    except jwt.InvalidTokenError:
        raise HTTPException(status_code=401, detail='invalid token')


def get_current_user(credentials: Optional[HTTPAuthorizationCredentials] = Security(bearer_scheme),
                     db: Session = Depends(get_session)) -> models.User:
    """Resolve the student that owns the request's bearer token."""
    if credentials is None:
        raise HTTPException(status_code=401, detail='missing bearer token')
    claims = decode_token(credentials.credentials)
    user_id = claims.get('user_id') or claims.get('sub')
    if not user_id:
        raise HTTPException(status_code=401, detail='invalid token payload')
    user = repositories.UserRepository(db).get(int(user_id))
    if user is None:
        raise HTTPException(status_code=401, detail='user not found')
    return user
