from sqlalchemy import Column, Integer, String, ForeignKey, Numeric
from sqlalchemy.orm import relationship
from app.db.base import Base


class Item(Base):
    """Catalog item. Reference data for invoice lines, never written by billing."""
    __tablename__ = "items"

    id = Column(Integer, primary_key=True, index=True)
    company_id = Column(Integer, ForeignKey("companies.id", ondelete="CASCADE"), nullable=False)
    name = Column(String(255), nullable=False)
    hsn_code = Column(String(16), nullable=True)
    sell_price = Column(Numeric(12, 2), nullable=False)
    tax_rate = Column(Numeric(5, 2), nullable=False, default=0)  # GST percent, e.g. 18

    company = relationship("Company", backref="items")
