from sqlalchemy import Column, Integer, String
from app.db.base import Base


class Company(Base):
    """Issuing company. Its registered state decides the seller side of the tax regime."""
    __tablename__ = "companies"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    gstin = Column(String(15), nullable=True)
    state_id = Column(Integer, nullable=True)  # registered state; NULL until configured
