import jwt
from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from backend.auth import jwt_handler
from backend.core.errors import AuthError
from backend.database import get_db
from backend.models.user import User
from backend.services.roles import RoleCatalog, get_role_catalog

security = HTTPBearer(auto_error=False)


def get_bearer_token(
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
) -> str:
    if credentials is None or not credentials.credentials:
        raise AuthError("Access denied. No token provided.")
    return credentials.credentials


def get_current_user(
    token: str = Depends(get_bearer_token),
    db: Session = Depends(get_db),
) -> User:
    try:
        payload = jwt_handler.decode_access_token(token)
    except jwt.ExpiredSignatureError as exc:
        raise AuthError("Token has expired.") from exc
    except jwt.InvalidTokenError as exc:
        raise AuthError("Invalid token.") from exc

    subject = payload.get("sub")
    if not subject or not str(subject).isdigit():
        raise AuthError("Invalid token subject")

    user = db.get(User, int(subject))
    if user is None or not user.is_active:
        raise AuthError("User not found")
    return user


def get_catalog(db: Session = Depends(get_db)) -> RoleCatalog:
    return get_role_catalog(db)
