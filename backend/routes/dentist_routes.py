from fastapi import APIRouter, Depends, Query, status
from pydantic import AliasChoices, EmailStr, Field
from sqlalchemy.orm import Session

from backend.auth.dependencies import get_catalog, get_current_user
from backend.database import get_db
from backend.models.user import User
from backend.routes.common import CamelModel, envelope
from backend.routes.user_routes import serialize_user
from backend.services import identity
from backend.services.roles import RoleCatalog

router = APIRouter(tags=['dentists'])


class CreateDentistRequest(CamelModel):
    email: EmailStr | None = None
    password: str | None = None
    first_name: str | None = None
    last_name: str | None = None
    gender: str | None = None
    phone: str | None = Field(
        default=None,
        validation_alias=AliasChoices('phone', 'phoneNumber', 'phone_number'),
    )


class UpdateDentistRequest(CreateDentistRequest):
    is_active: bool | None = None


@router.post('', status_code=status.HTTP_201_CREATED)
def create_dentist(
    data: CreateDentistRequest,
    db: Session = Depends(get_db),
    catalog: RoleCatalog = Depends(get_catalog),
    current_user: User = Depends(get_current_user),
):
    dentist = identity.create_dentist(db, catalog, **data.model_dump())
    return envelope(serialize_user(dentist), message='Dentist created successfully')


@router.get('')
def list_dentists(
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=10, ge=1, le=100),
    search: str | None = Query(default=None),
    db: Session = Depends(get_db),
    catalog: RoleCatalog = Depends(get_catalog),
    current_user: User = Depends(get_current_user),
):
    result = identity.list_dentists(db, catalog, page=page, limit=limit, search=search)
    return envelope([serialize_user(dentist) for dentist in result.items], pagination=result.meta())


@router.get('/{dentist_id}')
def get_dentist(
    dentist_id: int,
    db: Session = Depends(get_db),
    catalog: RoleCatalog = Depends(get_catalog),
    current_user: User = Depends(get_current_user),
):
    return envelope(serialize_user(identity.get_dentist(db, catalog, dentist_id)))


@router.put('/{dentist_id}')
def update_dentist(
    dentist_id: int,
    data: UpdateDentistRequest,
    db: Session = Depends(get_db),
    catalog: RoleCatalog = Depends(get_catalog),
    current_user: User = Depends(get_current_user),
):
    dentist = identity.update_dentist(db, catalog, dentist_id, data.model_dump(exclude_unset=True))
    return envelope(serialize_user(dentist), message='Dentist updated successfully')


@router.delete('/{dentist_id}')
def delete_dentist(
    dentist_id: int,
    db: Session = Depends(get_db),
    catalog: RoleCatalog = Depends(get_catalog),
    current_user: User = Depends(get_current_user),
):
    identity.delete_dentist(db, catalog, dentist_id)
    return envelope(message='Dentist deleted successfully')
