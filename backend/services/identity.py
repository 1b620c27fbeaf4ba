"""Identity & role store: users, their single role, and dentist management."""

import logging
import re
from datetime import datetime

from sqlalchemy import func, or_
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from backend.auth.passwords import hash_password, validate_password_strength, verify_password
from backend.core.errors import (
    AuthError,
    ConflictError,
    InternalError,
    MissingFieldsError,
    NotFoundError,
    ValidationError,
)
from backend.core.pagination import Page, paginate
from backend.models.role import Role
from backend.models.user import User, UserRole
from backend.services.roles import RoleCatalog, RoleKind

logger = logging.getLogger(__name__)

EMAIL_PATTERN = re.compile(r'^[^\s@]+@[^\s@]+\.[^\s@]+$')
USER_SORT_COLUMNS = {
    'id': User.id,
    'email': User.email,
    'first_name': User.first_name,
    'last_name': User.last_name,
    'date_updated': User.date_updated,
}


def normalize_email(email: str) -> str:
    return email.strip().lower()


def find_user_by_id(db: Session, user_id: int) -> User | None:
    return db.get(User, user_id)


def find_user_by_email(db: Session, email: str) -> User | None:
    return db.query(User).filter(func.lower(User.email) == normalize_email(email)).first()


def find_role_for_user(db: Session, user_id: int) -> int | None:
    row = db.query(UserRole.role_id).filter(UserRole.user_id == user_id).first()
    return row.role_id if row else None


def _build_user(
    *,
    email: str | None,
    password: str | None,
    first_name: str | None,
    last_name: str | None,
    gender: str | None,
    phone: str | None,
) -> User:
    if not email or not password or not first_name or not last_name:
        raise MissingFieldsError(
            'Email, password, first name and last name are required',
            details={'required': ['email', 'password', 'firstName', 'lastName']},
        )
    if not EMAIL_PATTERN.match(email.strip()):
        raise ValidationError('Invalid email format')
    validate_password_strength(password)

    return User(
        email=normalize_email(email),
        password_hash=hash_password(password),
        first_name=first_name.strip(),
        last_name=last_name.strip(),
        gender=gender,
        phone=phone,
        is_active=True,
        date_updated=datetime.now(),
    )


def register_user(
    db: Session,
    *,
    email: str | None,
    password: str | None,
    first_name: str | None,
    last_name: str | None,
    role_id: int,
    gender: str | None = None,
    phone: str | None = None,
) -> User:
    """Create a user and its role assignment as one unit of work."""
    user = _build_user(
        email=email,
        password=password,
        first_name=first_name,
        last_name=last_name,
        gender=gender,
        phone=phone,
    )
    if find_user_by_email(db, user.email) is not None:
        raise ConflictError('User with this email already exists')
    if db.get(Role, role_id) is None:
        raise NotFoundError('Role not found')

    try:
        db.add(user)
        db.flush()
        db.add(UserRole(user_id=user.id, role_id=role_id, date_updated=datetime.now()))
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        raise ConflictError('User with this email already exists') from exc
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception('Error creating user %s', user.email)
        raise InternalError('Error creating user') from exc

    db.refresh(user)
    logger.info('Registered user %s with role %s', user.id, role_id)
    return user


def authenticate(db: Session, email: str | None, password: str | None) -> User:
    if not email or not password:
        raise MissingFieldsError('Email and password are required')

    user = find_user_by_email(db, email)
    if user is None or not verify_password(password, user.password_hash):
        raise AuthError('Invalid credentials')
    if not user.is_active:
        raise AuthError('Account is inactive')

    user.date_updated = datetime.now()
    try:
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        raise InternalError('Error during login') from exc
    db.refresh(user)
    return user


def list_users(
    db: Session,
    *,
    page: int | None = None,
    limit: int | None = None,
    sort_by: str | None = None,
    sort_order: str | None = None,
    search: str | None = None,
    is_active: bool | None = None,
) -> Page:
    query = db.query(User)
    if search:
        pattern = f'%{search.strip()}%'
        query = query.filter(
            or_(User.first_name.ilike(pattern), User.last_name.ilike(pattern), User.email.ilike(pattern))
        )
    if is_active is not None:
        query = query.filter(User.is_active == is_active)

    column = USER_SORT_COLUMNS.get(sort_by or 'id', User.id)
    query = query.order_by(column.desc() if (sort_order or '').lower() == 'desc' else column.asc())
    return paginate(query, page, limit)


def _dentist_query(db: Session, catalog: RoleCatalog):
    return db.query(User).join(UserRole, UserRole.user_id == User.id).filter(
        UserRole.role_id == catalog.id_for(RoleKind.DENTIST)
    )


def create_dentist(db: Session, catalog: RoleCatalog, **fields) -> User:
    return register_user(db, role_id=catalog.id_for(RoleKind.DENTIST), **fields)


def list_dentists(
    db: Session,
    catalog: RoleCatalog,
    *,
    page: int | None = None,
    limit: int | None = None,
    search: str | None = None,
) -> Page:
    query = _dentist_query(db, catalog)
    if search:
        pattern = f'%{search.strip()}%'
        query = query.filter(
            or_(User.first_name.ilike(pattern), User.last_name.ilike(pattern), User.email.ilike(pattern))
        )
    return paginate(query.order_by(User.first_name.asc(), User.id.asc()), page, limit)


def get_dentist(db: Session, catalog: RoleCatalog, user_id: int) -> User:
    dentist = _dentist_query(db, catalog).filter(User.id == user_id).first()
    if dentist is None:
        raise NotFoundError('Dentist not found')
    return dentist


def update_dentist(db: Session, catalog: RoleCatalog, user_id: int, changes: dict) -> User:
    """Apply the non-empty entries of ``changes``; omitted fields keep their values."""
    dentist = get_dentist(db, catalog, user_id)

    password = changes.get('password')
    if password:
        validate_password_strength(password)

    email = changes.get('email')
    if email:
        if not EMAIL_PATTERN.match(email.strip()):
            raise ValidationError('Invalid email format')
        other = find_user_by_email(db, email)
        if other is not None and other.id != dentist.id:
            raise ConflictError('Dentist with this email already exists')
        dentist.email = normalize_email(email)

    for attribute in ('first_name', 'last_name', 'gender', 'phone'):
        value = changes.get(attribute)
        if value:
            setattr(dentist, attribute, value)
    if changes.get('is_active') is not None:
        dentist.is_active = bool(changes['is_active'])

    if password:
        dentist.password_hash = hash_password(password)

    dentist.date_updated = datetime.now()
    try:
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        raise ConflictError('Dentist with this email already exists') from exc
    except SQLAlchemyError as exc:
        db.rollback()
        raise InternalError('Error updating dentist') from exc
    db.refresh(dentist)
    return dentist


def delete_dentist(db: Session, catalog: RoleCatalog, user_id: int) -> None:
    """Remove the role assignment and the user together, or neither."""
    dentist = get_dentist(db, catalog, user_id)
    try:
        # The role assignment is removed by the relationship cascade in the same flush.
        db.delete(dentist)
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        raise ConflictError('Cannot delete dentist. This dentist has scheduled appointments') from exc
    except SQLAlchemyError as exc:
        db.rollback()
        raise InternalError('Error deleting dentist') from exc
    logger.info('Deleted dentist %s', user_id)
