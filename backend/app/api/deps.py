"""FastAPI dependencies: DB session and the billing repository built on it."""
from typing import Generator

from fastapi import Depends
from sqlalchemy.orm import Session

from app.db.repository import BillingRepository
from app.db.session import SessionLocal


def get_db() -> Generator[Session, None, None]:
    """Get database session."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_repository(db: Session = Depends(get_db)) -> BillingRepository:
    """Repository handed to the billing services for this request."""
    return BillingRepository(db)
