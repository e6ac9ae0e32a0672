# backend/database.py
from sqlalchemy import create_engine, event
from sqlalchemy.orm import declarative_base, sessionmaker
from dotenv import load_dotenv

from config import settings

load_dotenv()

# 1. Address from the environment / .env, local SQLite by default
SQLALCHEMY_DATABASE_URL = settings.DATABASE_URL

# 2. Hosted Postgres providers hand out postgres://, SQLAlchemy needs postgresql://
if SQLALCHEMY_DATABASE_URL and SQLALCHEMY_DATABASE_URL.startswith("postgres://"):
    SQLALCHEMY_DATABASE_URL = SQLALCHEMY_DATABASE_URL.replace("postgres://", "postgresql://", 1)


def make_engine(url: str, **kwargs):
    """Engine with the driver specific options the stock ledger relies on."""
    if url.startswith("sqlite"):
        connect_args = {"check_same_thread": False}  # SQLite only
        engine_kwargs = {}
    else:
        connect_args = {}
        engine_kwargs = {"pool_size": 20, "max_overflow": 0, "pool_pre_ping": True, "pool_recycle": 1800}
    engine_kwargs.update(kwargs)

    new_engine = create_engine(url, connect_args=connect_args, **engine_kwargs)

    if new_engine.dialect.name == "sqlite":
        # SQLite ignores FOR UPDATE; taking the write lock at BEGIN makes
        # read-modify-write of stock serial across connections
        @event.listens_for(new_engine, "connect")
        def _no_driver_transactions(dbapi_connection, connection_record):
            dbapi_connection.isolation_level = None

        @event.listens_for(new_engine, "begin")
        def _begin_immediate(conn):
            conn.exec_driver_sql("BEGIN IMMEDIATE")

    return new_engine


engine = make_engine(SQLALCHEMY_DATABASE_URL)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()

def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()

def init_db():
    # Register every model on Base.metadata before creating tables
    import models.users, models.product, models.transaction, models.bom  # noqa: F401
    import models.processed_order, models.attachment, models.log  # noqa: F401
    Base.metadata.create_all(bind=engine)
