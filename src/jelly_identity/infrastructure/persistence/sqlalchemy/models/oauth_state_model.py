"""SQLAlchemy model for pending OAuth authorizations."""

from datetime import datetime
from uuid import UUID, uuid4

from sqlalchemy import DateTime, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from jelly.domain.shared.time import utc_now
from jelly_identity.infrastructure.persistence.sqlalchemy.base import IdentityBase


class OAuthStateModel(IdentityBase):
    """State and PKCE verifier kept between ``begin`` and the callback."""

    __tablename__ = "oauth_states"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    provider: Mapped[str] = mapped_column(String(32), nullable=False)
    state_hash: Mapped[str] = mapped_column(
        String(64),
        unique=True,
        nullable=False,
        index=True,
    )
    code_verifier: Mapped[str] = mapped_column(String(128), nullable=False)
    login_hint: Mapped[str | None] = mapped_column(String(255), nullable=True)
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
        return f"<OAuthStateModel(id={self.id}, provider={self.provider})>"
