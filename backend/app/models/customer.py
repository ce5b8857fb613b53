from decimal import Decimal

from sqlalchemy import Column, Integer, String, ForeignKey, Numeric
from sqlalchemy.orm import relationship
from app.db.base import Base


class Customer(Base):
    __tablename__ = "customers"

    id = Column(Integer, primary_key=True, index=True)
    company_id = Column(Integer, ForeignKey("companies.id", ondelete="CASCADE"), nullable=False)
    name = Column(String(255), nullable=False)
    gstin = Column(String(15), nullable=True)
    place_of_supply_state_id = Column(Integer, nullable=True)
    # Sum of unadjusted_amount over this customer's payments (derived, see ledger_service)
    unadjusted_amount = Column(Numeric(12, 2), nullable=False, default=Decimal("0"))

    company = relationship("Company", backref="customers")
