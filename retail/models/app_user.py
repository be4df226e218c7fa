"""Application user model.

Only the identity needed to stamp ``created_by`` on documents and ledger
rows lives here; credentials are handled by the login service.
"""
from sqlalchemy import Column, String, Boolean, DateTime
from sqlalchemy.sql import func

from retail.database import Base, Id


class AppUser(Base):
    """Staff member acting on orders and receipts."""

    __tablename__ = 'app_user'

    id = Column(Id, primary_key=True, autoincrement=True)
    username = Column(String(64), nullable=False, unique=True)
    full_name = Column(String(255), nullable=True)
    role = Column(String(20), nullable=False, default='staff', server_default='staff')
    active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    def __repr__(self):
        return f"<AppUser(id={self.id}, username='{self.username}')>"
