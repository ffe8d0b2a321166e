from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, declarative_base
from shared.core.config import PLAZA_DATABASE_URL, settings

Base = declarative_base()

POOL_SIZE = 5
MAX_OVERFLOW = 5
POOL_TIMEOUT = 30

if PLAZA_DATABASE_URL.startswith("sqlite"):
    plaza_engine = create_engine(
        PLAZA_DATABASE_URL, connect_args={"check_same_thread": False}
    )
else:
    plaza_engine = create_engine(
        PLAZA_DATABASE_URL,
        pool_pre_ping=True,
        pool_recycle=300,
        pool_size=POOL_SIZE,          # max idle connections
        max_overflow=MAX_OVERFLOW,    # max temporary extra connections
        pool_timeout=POOL_TIMEOUT,    # wait time before failing
        # every statement is bounded server side
        connect_args={
            "options": f"-c statement_timeout={settings.DB_STATEMENT_TIMEOUT_MS}"
        },
    )

PlazaSessionLocal = sessionmaker(
    autocommit=False, autoflush=False, bind=plaza_engine)


# Dependency
def get_plaza_db():
    db = PlazaSessionLocal()
    try:
        yield db
    finally:
        db.close()
