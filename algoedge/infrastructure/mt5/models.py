"""
SQLAlchemy ORM models for the MT5 bounded context.

Schema is owned by the platform's migrations; ``init_models`` only
creates it for development and tests.
"""

from datetime import datetime, timezone

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    text,
)
from sqlalchemy.sql import func

from algoedge.infrastructure.database import Base

CONNECTED_ONLY = text("status = 'connected'")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class UserModel(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String(255), unique=True, index=True, nullable=False)
    username = Column(String(100))
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime(timezone=True), default=_utcnow, server_default=func.now())


class Mt5AccountModel(Base):
    __tablename__ = "mt5_accounts"
    __table_args__ = (
        # At most one connected account per user.
        Index(
            "uq_mt5_accounts_user_connected",
            "user_id",
            unique=True,
            postgresql_where=CONNECTED_ONLY,
            sqlite_where=CONNECTED_ONLY,
        ),
    )

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    account_id = Column(String(50), nullable=False)
    server = Column(String(100), nullable=False)
    api_key = Column(String(100))  # MetaAPI account id
    status = Column(String(20), nullable=False, default="disconnected")
    is_connected = Column(Boolean, nullable=False, default=False)
    balance = Column(Numeric(15, 2), nullable=False, default=0)
    equity = Column(Numeric(15, 2), nullable=False, default=0)
    last_sync = Column(DateTime(timezone=True))
    created_at = Column(DateTime(timezone=True), default=_utcnow, server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True),
        default=_utcnow,
        onupdate=_utcnow,
        server_default=func.now(),
    )


class AuditLogModel(Base):
    __tablename__ = "audit_logs"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), index=True)
    action = Column(String(100), nullable=False, index=True)
    details = Column(JSON)
    ip_address = Column(String(45))
    created_at = Column(DateTime(timezone=True), default=_utcnow, server_default=func.now())
