from datetime import datetime

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from backend.auth.dependencies import get_current_user
from backend.database import get_db
from backend.models.role import Role
from backend.models.user import User
from backend.routes.common import CamelModel, envelope
from backend.services import roles

router = APIRouter(tags=['roles'])


class RoleRequest(CamelModel):
    description: str | None = None


class RoleResponse(CamelModel):
    role_id: int
    description: str
    date_created: datetime | None = None
    date_updated: datetime | None = None


def serialize_role(role: Role) -> RoleResponse:
    return RoleResponse(
        role_id=role.id,
        description=role.description,
        date_created=role.date_created,
        date_updated=role.date_updated,
    )


@router.get('')
def list_roles(db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    return envelope([serialize_role(role) for role in roles.list_roles(db)])


@router.get('/{role_id}')
def get_role(role_id: int, db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    return envelope(serialize_role(roles.get_role(db, role_id)))


@router.post('', status_code=status.HTTP_201_CREATED)
def create_role(
    data: RoleRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    role = roles.create_role(db, data.description)
    return envelope(serialize_role(role), message='Role created successfully')


@router.put('/{role_id}')
def update_role(
    role_id: int,
    data: RoleRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    role = roles.update_role(db, role_id, data.description)
    return envelope(serialize_role(role), message='Role updated successfully')


@router.delete('/{role_id}')
def delete_role(role_id: int, db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    roles.delete_role(db, role_id)
    return envelope(message='Role deleted successfully')
