# create_tables.py
import sys

from teamdesk.config import settings
from teamdesk.database import Base, SessionLocal, engine
from teamdesk.models import User, Role
from teamdesk.utils.security import hash_password

DEFAULT_ADMIN_EMAIL = "admin@example.com"
DEFAULT_ADMIN_PASSWORD = "admin123"


def create_tables(drop_existing: bool = False):
    """Create all tables, optionally dropping the existing schema first"""
    if drop_existing:
        Base.metadata.drop_all(bind=engine)
        print("Dropped existing tables")
    Base.metadata.create_all(bind=engine)
    print(f"All tables created on {settings.DATABASE_URL}")
    create_default_admin()


def create_default_admin():
    """Create a default admin user if none exists"""
    db = SessionLocal()
    try:
        if db.query(User).filter(User.email == DEFAULT_ADMIN_EMAIL).first():
            print("Admin user already exists")
            return

        db.add(User(
            name="System Administrator",
            email=DEFAULT_ADMIN_EMAIL,
            phone="+1-555-0000",
            hashed_password=hash_password(DEFAULT_ADMIN_PASSWORD),
            role=Role.ADMIN,
        ))
        db.commit()
        print("Default admin user created")
        print(f"   Email: {DEFAULT_ADMIN_EMAIL}")
        print(f"   Password: {DEFAULT_ADMIN_PASSWORD}")
    finally:
        db.close()


if __name__ == "__main__":
    create_tables(drop_existing="--drop" in sys.argv)
