import os
from datetime import datetime

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

os.environ.setdefault('DATABASE_URL', 'sqlite:///./test.db')

from backend.database import Base  # noqa: E402
from backend.models.appointment import Appointment  # noqa: E402
from backend.models.service import Service  # noqa: E402
from backend.models.user import User, UserRole  # noqa: E402
from backend.services.roles import RoleKind, load_role_catalog, seed_roles, set_role_catalog  # noqa: E402


@pytest.fixture
def engine():
    engine = create_engine(
        'sqlite://',
        connect_args={'check_same_thread': False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    try:
        yield engine
    finally:
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def catalog(db):
    seed_roles(db)
    role_catalog = load_role_catalog(db)
    set_role_catalog(role_catalog)
    try:
        yield role_catalog
    finally:
        set_role_catalog(None)


@pytest.fixture
def add_user(db, catalog):
    def _add_user(kind: RoleKind | None, email: str, first_name: str = 'Test', last_name: str = 'User') -> User:
        user = User(
            email=email,
            password_hash='not-a-real-hash',
            first_name=first_name,
            last_name=last_name,
            is_active=True,
        )
        db.add(user)
        db.flush()
        if kind is not None:
            db.add(UserRole(user_id=user.id, role_id=catalog.id_for(kind)))
        db.commit()
        db.refresh(user)
        return user

    return _add_user


@pytest.fixture
def dentist(add_user):
    return add_user(RoleKind.DENTIST, 'dentist@clinic.example', 'Dana', 'Molar')


@pytest.fixture
def patient(add_user):
    return add_user(RoleKind.PATIENT, 'patient@clinic.example', 'Pat', 'Smile')


@pytest.fixture
def service(db):
    cleaning = Service(description='Cleaning')
    db.add(cleaning)
    db.commit()
    db.refresh(cleaning)
    return cleaning


@pytest.fixture
def add_appointment(db):
    def _add_appointment(when: datetime, patient: User, dentist: User, service: Service, status: str = 'pending'):
        appointment = Appointment(
            appointment_date=when,
            patient_user_id=patient.id,
            dentist_user_id=dentist.id,
            service_id=service.id,
            status=status,
        )
        db.add(appointment)
        db.commit()
        db.refresh(appointment)
        return appointment

    return _add_appointment
