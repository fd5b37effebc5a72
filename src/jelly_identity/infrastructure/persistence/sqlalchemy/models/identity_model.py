"""SQLAlchemy model for linked OAuth identities."""

from uuid import UUID, uuid4

from sqlalchemy import ForeignKey, Index, String, Text, Uuid, func
from sqlalchemy.orm import Mapped, mapped_column

from jelly.infrastructure.persistence.sqlalchemy.models.base import TimestampMixin
from jelly_identity.infrastructure.persistence.sqlalchemy.base import IdentityBase


class IdentityModel(IdentityBase, TimestampMixin):
    """One provider account linked to a local account."""

    __tablename__ = "identities"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    account_id: Mapped[UUID] = mapped_column(
        Uuid,
        ForeignKey("accounts.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    provider: Mapped[str] = mapped_column(String(32), nullable=False, index=True)
    username: Mapped[str] = mapped_column(String(255), nullable=False)
    name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    refresh_token: Mapped[str | None] = mapped_column(Text, nullable=True)

    def __repr__(self) -> str:
        return (
            f"<IdentityModel(id={self.id}, provider={self.provider}, "
            f"username={self.username})>"
        )


Index(
    "ix_identities_provider_username_lower",
    IdentityModel.provider,
    func.lower(IdentityModel.username),
    unique=True,
)
