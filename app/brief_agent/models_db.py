"""
SQLAlchemy database models for the brief analysis service.

Persist account balances, captured PayPal orders and ingested documents
when the service is configured with a database.
"""

from datetime import datetime, timezone

from sqlalchemy import CheckConstraint, DateTime, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from .database import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Account(Base):
    """Credit balance of a single account."""

    __tablename__ = "accounts"

    account_id: Mapped[str] = mapped_column(String(255), primary_key=True)
    credits: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=_utcnow,
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=_utcnow,
        onupdate=_utcnow,
        nullable=False,
    )

    __table_args__ = (
        CheckConstraint("credits >= 0", name="ck_accounts_credits_non_negative"),
    )

    def __repr__(self) -> str:
        return f"<Account(account_id='{self.account_id}', credits={self.credits})>"


class CapturedOrder(Base):
    """
    A PayPal order whose credits have been granted.

    The primary key makes a second grant for the same order impossible.
    """

    __tablename__ = "captured_orders"

    order_id: Mapped[str] = mapped_column(String(255), primary_key=True)
    account_id: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    credits_added: Mapped[int] = mapped_column(Integer, nullable=False)
    captured_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=_utcnow,
        nullable=False,
    )

    def __repr__(self) -> str:
        return f"<CapturedOrder(order_id='{self.order_id}', credits_added={self.credits_added})>"


class StoredDocument(Base):
    """Extracted text and metadata of an uploaded brief."""

    __tablename__ = "documents"

    document_id: Mapped[str] = mapped_column(String(64), primary_key=True)
    extracted_text: Mapped[str] = mapped_column(Text, nullable=False, default="")
    owner_account_id: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    storage_key: Mapped[str | None] = mapped_column(String(1024), nullable=True)
    original_name: Mapped[str] = mapped_column(String(512), nullable=False)
    uploaded_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=_utcnow,
        nullable=False,
    )

    def __repr__(self) -> str:
        return f"<StoredDocument(document_id='{self.document_id}', original_name='{self.original_name}')>"
