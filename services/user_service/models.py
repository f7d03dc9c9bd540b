import uuid

from sqlalchemy import Column, DateTime, Enum, ForeignKey, Integer, String
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from shared.config.database import Base
from shared.security import Role


class ApplicationUser(Base):
    """Profile record of an authenticated identity. Credentials live elsewhere."""

    __tablename__ = "application_users"

    id = Column(String(64), primary_key=True, index=True, default=lambda: str(uuid.uuid4()))
    email = Column(String(255), unique=True, nullable=False, index=True)
    name = Column(String(255), nullable=False)
    phone_number = Column(String(30), nullable=True)
    street_address = Column(String(255), nullable=True)
    city = Column(String(100), nullable=True)
    state = Column(String(100), nullable=True)
    postal_code = Column(String(20), nullable=True)
    role = Column(Enum(Role, native_enum=False, length=20), nullable=False, default=Role.INDIVIDUAL)
    company_id = Column(Integer, ForeignKey("companies.id"), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    company = relationship("Company", back_populates="users", lazy="noload")

    # created_at is filled in by the database; fetch it on insert
    __mapper_args__ = {"eager_defaults": True}

    def _collect_errors(self, errors):
        if self.role == Role.COMPANY and self.company_id is None:
            errors.setdefault("company_id", []).append("Company users must belong to a company.")
