from sqlalchemy import Column, Integer, String
from sqlalchemy.orm import relationship

from shared.config.database import Base


class Company(Base):
    __tablename__ = "companies"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    street_address = Column(String(255), nullable=True)
    city = Column(String(100), nullable=True)
    state = Column(String(100), nullable=True)
    postal_code = Column(String(20), nullable=True)
    phone_number = Column(String(30), nullable=True)

    users = relationship("ApplicationUser", back_populates="company", lazy="noload")
