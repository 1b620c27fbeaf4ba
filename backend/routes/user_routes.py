import jwt
from fastapi import APIRouter, Depends, Query, status
from pydantic import EmailStr
from sqlalchemy.orm import Session

from backend.auth import jwt_handler
from backend.auth.dependencies import get_bearer_token, get_catalog, get_current_user
from backend.core import config
from backend.core.errors import AuthError, MissingFieldsError, NotFoundError
from backend.database import get_db
from backend.models.user import User
from backend.routes.common import CamelModel, envelope
from backend.services import identity
from backend.services.roles import RoleCatalog, RoleKind

router = APIRouter(tags=['users'])


class RegisterUserRequest(CamelModel):
    email: EmailStr
    password: str
    first_name: str
    last_name: str
    gender: str | None = None
    phone: str | None = None


class CreateUserRequest(RegisterUserRequest):
    role_id: int | None = None


class LoginRequest(CamelModel):
    email: str | None = None
    password: str | None = None


class RefreshTokenRequest(CamelModel):
    refresh_token: str | None = None


class UserResponse(CamelModel):
    user_id: int
    email: str
    first_name: str
    last_name: str
    gender: str | None = None
    phone: str | None = None
    is_active: bool
    role_id: int | None = None


class TokenBundle(CamelModel):
    access_token: str
    refresh_token: str | None = None
    expires_in: str


def serialize_user(user: User) -> UserResponse:
    return UserResponse(
        user_id=user.id,
        email=user.email,
        first_name=user.first_name,
        last_name=user.last_name,
        gender=user.gender,
        phone=user.phone,
        is_active=bool(user.is_active),
        role_id=user.role.role_id if user.role else None,
    )


def _expires_in() -> str:
    return f'{config.JWT_EXPIRES_MINUTES}m'


def issue_tokens(user: User, catalog: RoleCatalog) -> TokenBundle:
    kind = catalog.kind_for(user.role.role_id if user.role else None)
    return TokenBundle(
        access_token=jwt_handler.create_access_token(user.id, user.email, kind.value if kind else None),
        refresh_token=jwt_handler.create_refresh_token(user.id, user.email),
        expires_in=_expires_in(),
    )


@router.post('/register', status_code=status.HTTP_201_CREATED)
def register(
    data: RegisterUserRequest,
    db: Session = Depends(get_db),
    catalog: RoleCatalog = Depends(get_catalog),
):
    user = identity.register_user(
        db,
        email=data.email,
        password=data.password,
        first_name=data.first_name,
        last_name=data.last_name,
        gender=data.gender,
        phone=data.phone,
        role_id=catalog.id_for(RoleKind.PATIENT),
    )
    return envelope(serialize_user(user), message='User created successfully')


@router.post('', status_code=status.HTTP_201_CREATED)
def create_user(
    data: CreateUserRequest,
    db: Session = Depends(get_db),
    catalog: RoleCatalog = Depends(get_catalog),
    current_user: User = Depends(get_current_user),
):
    user = identity.register_user(
        db,
        email=data.email,
        password=data.password,
        first_name=data.first_name,
        last_name=data.last_name,
        gender=data.gender,
        phone=data.phone,
        role_id=data.role_id or catalog.id_for(RoleKind.PATIENT),
    )
    return envelope(serialize_user(user), message='User created successfully')


@router.get('')
def list_users(
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=10, ge=1, le=100),
    sort_by: str = Query(default='id', alias='sortBy'),
    sort_order: str = Query(default='asc', alias='sortOrder'),
    search: str | None = Query(default=None),
    is_active: bool | None = Query(default=None, alias='isActive'),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    result = identity.list_users(
        db,
        page=page,
        limit=limit,
        sort_by=sort_by,
        sort_order=sort_order,
        search=search,
        is_active=is_active,
    )
    return envelope([serialize_user(user) for user in result.items], pagination=result.meta())


@router.post('/login')
def login(
    data: LoginRequest,
    db: Session = Depends(get_db),
    catalog: RoleCatalog = Depends(get_catalog),
):
    user = identity.authenticate(db, data.email, data.password)
    return envelope(
        {'user': serialize_user(user).model_dump(by_alias=True, mode='json'),
         'tokens': issue_tokens(user, catalog).model_dump(by_alias=True, mode='json')},
        message='Login successful',
    )


@router.post('/refresh-token')
def refresh_token(
    data: RefreshTokenRequest,
    db: Session = Depends(get_db),
    catalog: RoleCatalog = Depends(get_catalog),
):
    if not data.refresh_token:
        raise MissingFieldsError('Refresh token is required')
    try:
        payload = jwt_handler.decode_refresh_token(data.refresh_token)
    except jwt.InvalidTokenError as exc:
        raise AuthError('Invalid refresh token') from exc

    user = identity.find_user_by_id(db, int(payload['sub']))
    if user is None:
        raise NotFoundError('User not found')

    tokens = issue_tokens(user, catalog)
    return envelope(TokenBundle(access_token=tokens.access_token, expires_in=tokens.expires_in))


@router.get('/verify-token')
def verify_token(
    token: str = Depends(get_bearer_token),
    db: Session = Depends(get_db),
    catalog: RoleCatalog = Depends(get_catalog),
):
    try:
        payload = jwt_handler.decode_access_token(token)
    except jwt.InvalidTokenError as exc:
        raise AuthError('Invalid or expired token') from exc

    user = identity.find_user_by_id(db, int(payload['sub']))
    if user is None:
        raise NotFoundError('User not found')

    return envelope(
        {'user': serialize_user(user).model_dump(by_alias=True, mode='json'),
         'tokens': issue_tokens(user, catalog).model_dump(by_alias=True, mode='json')},
        message='Token verified successfully',
    )


@router.get('/me')
def me(current_user: User = Depends(get_current_user)):
    return envelope(serialize_user(current_user))
