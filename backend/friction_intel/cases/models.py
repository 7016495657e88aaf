import uuid

from sqlalchemy import Boolean, ForeignKey, String, Text, UniqueConstraint, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from friction_intel.models.base import Base, TimestampMixin, generate_uuid


class RawCase(TimestampMixin, Base):
    __tablename__ = "raw_cases"
    __table_args__ = (UniqueConstraint("account_id", "source_type", "source_id"),)

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=generate_uuid)
    account_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("accounts.id"), nullable=False, index=True)
    source_type: Mapped[str] = mapped_column(String(50), nullable=False, default="salesforce")  # salesforce, vitally
    source_id: Mapped[str | None] = mapped_column(String(255))
    text_content: Mapped[str] = mapped_column(Text, nullable=False, default="")
    # Flipped false -> true exactly once by the batch engine, never reset
    processed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, index=True)
