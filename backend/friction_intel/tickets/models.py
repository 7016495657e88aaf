import uuid
from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, String, UniqueConstraint, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from friction_intel.models.base import Base, TimestampMixin, generate_uuid


class ThemeTicketLink(TimestampMixin, Base):
    """A Jira issue linked to one of an account's friction themes."""

    __tablename__ = "theme_ticket_links"
    __table_args__ = (UniqueConstraint("account_id", "theme_key", "issue_key"),)

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=generate_uuid)
    account_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("accounts.id"), nullable=False, index=True)
    theme_key: Mapped[str] = mapped_column(String(50), nullable=False, index=True)
    issue_key: Mapped[str] = mapped_column(String(50), nullable=False)
    summary: Mapped[str | None] = mapped_column(String(500))
    status: Mapped[str | None] = mapped_column(String(100))  # raw Jira status name
    resolution_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
