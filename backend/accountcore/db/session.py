from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker

from accountcore.core.config import get_settings


def enable_sqlite_savepoints(engine: Engine) -> Engine:
    # pysqlite opens transactions lazily, which breaks SAVEPOINT; let SQLAlchemy emit BEGIN itself.
    @event.listens_for(engine, "connect")
    def _disable_pysqlite_transactions(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, "begin")
    def _emit_begin(conn):
        conn.exec_driver_sql("BEGIN")

    return engine


settings = get_settings()

engine_options: dict = {"future": True, "pool_pre_ping": True}
if not settings.database_url.startswith("sqlite"):
    # Keep the pool small and recycle often on hosted Postgres.
    engine_options.update(pool_size=5, max_overflow=5, pool_recycle=300)

engine = create_engine(settings.database_url, **engine_options)
if settings.database_url.startswith("sqlite"):
    enable_sqlite_savepoints(engine)

SessionLocal = sessionmaker(
    bind=engine,
    autoflush=False,
    autocommit=False,
    expire_on_commit=False,
)
