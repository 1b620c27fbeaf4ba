import logging

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from backend.core import config
from backend.core.errors import ClinicError
from backend.database import Base, SessionLocal, engine, ensure_appointment_schema
from backend.models import appointment, role, service, user  # noqa: F401
from backend.routes import appointment_routes, dentist_routes, role_routes, service_routes, user_routes
from backend.services.roles import load_role_catalog, seed_roles, set_role_catalog

logging.basicConfig(
    level=config.LOG_LEVEL,
    format='%(asctime)s %(levelname)s %(name)s: %(message)s',
)

app = FastAPI(title='Dental Clinic API')

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=['*'],
    allow_headers=['*'],
)

logger = logging.getLogger(__name__)


@app.on_event('startup')
def initialize_database() -> None:
    config.validate_runtime_config()
    try:
        Base.metadata.create_all(bind=engine)
        ensure_appointment_schema()
        with SessionLocal() as db:
            seed_roles(db)
            set_role_catalog(load_role_catalog(db))
    except SQLAlchemyError:
        logger.exception('Database initialization failed. Check DATABASE_URL and database credentials.')


@app.exception_handler(ClinicError)
def handle_clinic_error(request: Request, exc: ClinicError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error('%s %s failed: %s', request.method, request.url.path, exc.message)
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.exception_handler(RequestValidationError)
def handle_request_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
    return JSONResponse(
        status_code=400,
        content={
            'success': False,
            'error': 'VALIDATION_ERROR',
            'message': 'Invalid request',
            'details': {'errors': jsonable_encoder(exc.errors())},
        },
    )


@app.exception_handler(Exception)
def handle_unexpected_error(request: Request, exc: Exception) -> JSONResponse:
    logger.exception('Unhandled error on %s %s', request.method, request.url.path)
    return JSONResponse(
        status_code=500,
        content={'success': False, 'error': 'INTERNAL_ERROR', 'message': 'Internal server error'},
    )


@app.get('/')
def root():
    return {'status': 'Dental Clinic API Running'}


app.include_router(appointment_routes.router, prefix='/api/appointments')
app.include_router(user_routes.router, prefix='/api/users')
app.include_router(dentist_routes.router, prefix='/api/dentists')
app.include_router(service_routes.router, prefix='/api/services')
app.include_router(role_routes.router, prefix='/api/roles')
