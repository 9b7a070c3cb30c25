from typing import Optional

from fastapi import Depends, HTTPException
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt
from sqlalchemy.orm import Session

from ..core.config import ALGORITHM, SECRET_KEY
from ..db import get_db
from ..models import User
from ..services.users import upsert_user

_bearer = HTTPBearer(auto_error=False)


def _decode_claims(credentials: Optional[HTTPAuthorizationCredentials]) -> Optional[dict]:
    if credentials is None or credentials.scheme.lower() != "bearer":
        return None
    try:
        payload = jwt.decode(credentials.credentials, SECRET_KEY, algorithms=[ALGORITHM])
    except JWTError:
        return None
    if not payload.get("sub"):
        return None
    return payload


def _resolve_user(db: Session, claims: dict) -> User:
    user = upsert_user(db, str(claims["sub"]), claims)
    db.commit()
    return user


def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(_bearer),
    db: Session = Depends(get_db),
) -> User:
    claims = _decode_claims(credentials)
    if claims is None:
        raise HTTPException(status_code=401, detail="Unauthorized")
    return _resolve_user(db, claims)


def get_current_user_optional(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(_bearer),
    db: Session = Depends(get_db),
) -> Optional[User]:
    claims = _decode_claims(credentials)
    if claims is None:
        return None
    return _resolve_user(db, claims)


def normalize_limit(limit: int, maximum: int = 100) -> int:
    return min(max(limit, 1), maximum)
