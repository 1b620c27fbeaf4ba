"""Role catalog and role CRUD.

Business logic never compares raw role ids. ``RoleKind`` names the roles the
scheduler understands, and a ``RoleCatalog`` built from the ``roles`` table at
startup maps stored ids onto those kinds.
"""

import enum
import logging
from dataclasses import dataclass, field
from datetime import datetime

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from backend.core.errors import ConflictError, InternalError, NotFoundError, ValidationError
from backend.models.role import Role
from backend.models.user import UserRole

logger = logging.getLogger(__name__)


class RoleKind(str, enum.Enum):
    DENTIST = 'dentist'
    PATIENT = 'patient'


DEFAULT_ROLE_IDS = {
    RoleKind.DENTIST: 1,
    RoleKind.PATIENT: 2,
}


@dataclass(frozen=True)
class RoleCatalog:
    ids_by_kind: dict[RoleKind, int] = field(default_factory=dict)

    def id_for(self, kind: RoleKind) -> int:
        try:
            return self.ids_by_kind[kind]
        except KeyError as exc:
            raise InternalError(f'Role {kind.value!r} is not configured.') from exc

    def kind_for(self, role_id: int | None) -> RoleKind | None:
        if role_id is None:
            return None
        for kind, known_id in self.ids_by_kind.items():
            if known_id == role_id:
                return kind
        return None


_catalog: RoleCatalog | None = None


def seed_roles(db: Session) -> None:
    """Insert the default dentist and patient rows when they are missing."""
    existing = {role.description.strip().lower() for role in db.query(Role).all()}
    now = datetime.now()
    created = False
    for kind, role_id in DEFAULT_ROLE_IDS.items():
        if kind.value in existing:
            continue
        if db.get(Role, role_id) is not None:
            logger.warning('Role id %s is taken; assigning a new id to %s', role_id, kind.value)
            role_id = None
        db.add(Role(id=role_id, description=kind.value.capitalize(), date_created=now, date_updated=now))
        created = True
    if created:
        db.commit()


def load_role_catalog(db: Session) -> RoleCatalog:
    ids_by_kind: dict[RoleKind, int] = {}
    for role in db.query(Role).order_by(Role.id.asc()).all():
        try:
            kind = RoleKind(role.description.strip().lower())
        except ValueError:
            continue
        ids_by_kind.setdefault(kind, role.id)
    return RoleCatalog(ids_by_kind=ids_by_kind)


def set_role_catalog(catalog: RoleCatalog | None) -> None:
    global _catalog
    _catalog = catalog


def get_role_catalog(db: Session) -> RoleCatalog:
    global _catalog
    if _catalog is None:
        _catalog = load_role_catalog(db)
    return _catalog


def list_roles(db: Session) -> list[Role]:
    return db.query(Role).order_by(Role.id.asc()).all()


def get_role(db: Session, role_id: int) -> Role:
    role = db.get(Role, role_id)
    if role is None:
        raise NotFoundError('Role not found')
    return role


def create_role(db: Session, description: str | None) -> Role:
    if not description or not description.strip():
        raise ValidationError('Description is required')
    now = datetime.now()
    role = Role(description=description.strip(), date_created=now, date_updated=now)
    try:
        db.add(role)
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        raise InternalError('Error creating role') from exc
    db.refresh(role)
    set_role_catalog(None)
    return role


def update_role(db: Session, role_id: int, description: str | None) -> Role:
    role = get_role(db, role_id)
    if not description or not description.strip():
        raise ValidationError('Description is required')
    kind = get_role_catalog(db).kind_for(role.id)
    if kind is not None and description.strip().lower() != kind.value:
        raise ConflictError(f'Cannot rename the {kind.value} role')
    role.description = description.strip()
    role.date_updated = datetime.now()
    try:
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        raise InternalError('Error updating role') from exc
    db.refresh(role)
    set_role_catalog(None)
    return role


def delete_role(db: Session, role_id: int) -> None:
    role = get_role(db, role_id)
    kind = get_role_catalog(db).kind_for(role.id)
    if kind is not None:
        raise ConflictError(f'Cannot delete the {kind.value} role')
    in_use = db.query(UserRole.id).filter(UserRole.role_id == role.id).first()
    if in_use is not None:
        raise ConflictError('Cannot delete role as it is assigned to users')
    try:
        db.delete(role)
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        raise InternalError('Error deleting role') from exc
    set_role_catalog(None)
