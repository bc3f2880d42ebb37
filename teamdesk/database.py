from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base, sessionmaker, Session

from teamdesk.config import settings

DATABASE_URL = settings.DATABASE_URL

# SQLite needs the same connection usable from FastAPI's worker threads
connect_args = {"check_same_thread": False} if DATABASE_URL.startswith("sqlite") else {}

engine = create_engine(DATABASE_URL, connect_args=connect_args)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()


def get_db():
    db: Session = SessionLocal()
    try:
        yield db
    finally:
        db.close()
