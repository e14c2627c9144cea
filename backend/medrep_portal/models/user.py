from sqlalchemy import Boolean, Column, DateTime, Index, Integer, String
from sqlalchemy.sql import func
from medrep_portal.database import Base

ROLE_MEDREP = "medrep"
ROLE_SUPERVISOR = "supervisor"
ROLE_ADMIN = "admin"
PRIVILEGED_ROLES = (ROLE_SUPERVISOR, ROLE_ADMIN)


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    username = Column(String(50), nullable=False)
    email = Column(String(100), nullable=False)
    name = Column(String(100), nullable=False)
    password_hash = Column(String(255), nullable=False)
    role = Column(String(20), nullable=False, default=ROLE_MEDREP)  # "medrep" | "supervisor" | "admin"
    region = Column(String(50))
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())


# Identity is unique regardless of letter case.
Index("uq_users_username_lower", func.lower(User.username), unique=True)
Index("uq_users_email_lower", func.lower(User.email), unique=True)
Index("ix_users_role_region_active", User.role, User.region, User.is_active)
