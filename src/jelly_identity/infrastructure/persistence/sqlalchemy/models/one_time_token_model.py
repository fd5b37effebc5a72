"""SQLAlchemy model for email verification and password reset tokens."""

from datetime import datetime
from uuid import UUID, uuid4

from sqlalchemy import DateTime, ForeignKey, String, UniqueConstraint, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from jelly.domain.shared.time import utc_now
from jelly_identity.infrastructure.persistence.sqlalchemy.base import IdentityBase


class OneTimeTokenModel(IdentityBase):
    """SQLAlchemy model for one-time tokens (hash only, never the raw value)."""

    __tablename__ = "one_time_tokens"
    __table_args__ = (
        UniqueConstraint("purpose", "token_hash", name="uq_one_time_tokens_purpose_hash"),
    )

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    account_id: Mapped[UUID] = mapped_column(
        Uuid,
        ForeignKey("accounts.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    purpose: Mapped[str] = mapped_column(String(32), nullable=False)
    token_hash: Mapped[str] = mapped_column(String(64), nullable=False)
    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    consumed_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utc_now,
    )

    def __repr__(self) -> str:
        return f"<OneTimeTokenModel(id={self.id}, purpose={self.purpose})>"
