"""User SQLAlchemy model"""

from uuid import uuid4

from sqlalchemy import Boolean, Column, Text, ForeignKey, CheckConstraint, Index, true
from sqlalchemy.dialects.postgresql import UUID, TIMESTAMP
from sqlalchemy.orm import relationship, validates
from sqlalchemy.sql import func
import re

from .base import Base, utcnow


class User(Base):
    """User model for vendors, consultants and admins.

    Vendors own document submissions and may be assigned to one consultant,
    who reviews their documents. Passwords are hashed using Argon2id.
    """
    __tablename__ = "user"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid4)
    email = Column(Text, nullable=False, unique=True)
    name = Column(Text, nullable=False)
    role = Column(Text, nullable=False)
    password_hash = Column(Text, nullable=False)
    company_name = Column(Text, nullable=True)
    phone = Column(Text, nullable=True)
    is_active = Column(Boolean, nullable=False, default=True, server_default=true())
    assigned_consultant_id = Column(
        UUID(as_uuid=True),
        ForeignKey("user.id", ondelete="SET NULL"),
        nullable=True,
    )
    last_login_at = Column(TIMESTAMP(timezone=True), nullable=True)
    created_at = Column(TIMESTAMP(timezone=True), nullable=False, default=utcnow, server_default=func.now())
    updated_at = Column(
        TIMESTAMP(timezone=True), nullable=False, default=utcnow, onupdate=utcnow, server_default=func.now()
    )

    # Relationships
    assigned_consultant = relationship(
        "User",
        remote_side=[id],
        foreign_keys=[assigned_consultant_id],
        back_populates="assigned_vendors",
    )
    assigned_vendors = relationship(
        "User",
        foreign_keys=[assigned_consultant_id],
        back_populates="assigned_consultant",
    )

    # Constraints
    __table_args__ = (
        CheckConstraint(
            "role IN ('vendor', 'consultant', 'admin')",
            name='ck_user_role'
        ),
        Index("ix_user_assigned_consultant_id", "assigned_consultant_id"),
    )

    @validates('email')
    def validate_email(self, key, value):
        """Basic email format validation"""
        if not re.match(r'^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$', value):
            raise ValueError("Invalid email format")
        return value.lower()
