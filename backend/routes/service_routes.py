from datetime import datetime

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from backend.auth.dependencies import get_current_user
from backend.database import get_db
from backend.models.service import Service
from backend.models.user import User
from backend.routes.common import CamelModel, envelope
from backend.services import catalog

router = APIRouter(tags=['services'])


class ServiceRequest(CamelModel):
    description: str | None = None


class ServiceResponse(CamelModel):
    service_id: int
    description: str
    date_created: datetime | None = None
    date_updated: datetime | None = None


def serialize_service(service: Service) -> ServiceResponse:
    return ServiceResponse(
        service_id=service.id,
        description=service.description,
        date_created=service.date_created,
        date_updated=service.date_updated,
    )


@router.get('')
def list_services(db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    return envelope([serialize_service(service) for service in catalog.list_services(db)])


@router.get('/{service_id}')
def get_service(
    service_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return envelope(serialize_service(catalog.get_service(db, service_id)))


@router.post('', status_code=status.HTTP_201_CREATED)
def create_service(
    data: ServiceRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    service = catalog.create_service(db, data.description)
    return envelope(serialize_service(service), message='Service created successfully')


@router.put('/{service_id}')
def update_service(
    service_id: int,
    data: ServiceRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    service = catalog.update_service(db, service_id, data.description)
    return envelope(serialize_service(service), message='Service updated successfully')


@router.delete('/{service_id}')
def delete_service(
    service_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    catalog.delete_service(db, service_id)
    return envelope(message='Service deleted successfully')
