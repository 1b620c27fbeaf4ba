import sqlite3
from threading import Lock

from sqlalchemy import create_engine, event, inspect, text
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base, sessionmaker

from backend.core import config


def _connect_args(database_url: str, timeout_seconds: int) -> dict:
    if database_url.startswith('sqlite'):
        return {'check_same_thread': False, 'timeout': timeout_seconds}
    if database_url.startswith('postgresql'):
        return {
            'connect_timeout': timeout_seconds,
            'options': f'-c statement_timeout={timeout_seconds * 1000}',
        }
    return {}


DATABASE_URL = config.DATABASE_URL
if DATABASE_URL.startswith('postgres://'):
    DATABASE_URL = DATABASE_URL.replace('postgres://', 'postgresql://', 1)

engine = create_engine(
    DATABASE_URL,
    connect_args=_connect_args(DATABASE_URL, config.DATABASE_TIMEOUT_SECONDS),
    pool_pre_ping=True,
)

SessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    bind=engine,
)

Base = declarative_base()

_schema_lock = Lock()
_appointment_schema_checked = False


@event.listens_for(Engine, 'connect')
def _enable_sqlite_foreign_keys(dbapi_connection, _connection_record) -> None:
    # SQLite ignores REFERENCES clauses unless asked per connection.
    if isinstance(dbapi_connection, sqlite3.Connection):
        cursor = dbapi_connection.cursor()
        cursor.execute('PRAGMA foreign_keys=ON')
        cursor.close()


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def ensure_appointment_schema(bind: Engine | None = None) -> None:
    global _appointment_schema_checked

    if _appointment_schema_checked and bind is None:
        return

    target = bind or engine

    with _schema_lock:
        if _appointment_schema_checked and bind is None:
            return

        table_names = set(inspect(target).get_table_names())
        statements = []
        if 'appointments' in table_names:
            statements += [
                'CREATE INDEX IF NOT EXISTS idx_appointments_dentist_date '
                'ON appointments(dentist_user_id, appointment_date)',
                'CREATE INDEX IF NOT EXISTS idx_appointments_patient_date '
                'ON appointments(patient_user_id, appointment_date)',
            ]
        if 'user_roles' in table_names:
            statements.append(
                'CREATE UNIQUE INDEX IF NOT EXISTS uq_user_roles_user_id ON user_roles(user_id)'
            )

        with target.begin() as connection:
            for statement in statements:
                connection.execute(text(statement))

        if bind is None:
            _appointment_schema_checked = True
