from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base, sessionmaker
from gamesync.config import get_settings

settings = get_settings()
database_url = settings.resolved_database_url

# Handle SQLite connection args
connect_args = {}
if database_url.startswith("sqlite"):
    connect_args = {"check_same_thread": False}

engine = create_engine(
    database_url,
    connect_args=connect_args,
    pool_pre_ping=True,
    pool_recycle=1800,
)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
