import uuid

from sqlalchemy import JSON, Boolean, Float, ForeignKey, Integer, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from friction_intel.models.base import Base, TimestampMixin, generate_uuid


class FrictionRecord(TimestampMixin, Base):
    __tablename__ = "friction_records"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=generate_uuid)
    account_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("accounts.id"), nullable=False, index=True)
    raw_case_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("raw_cases.id"), nullable=False, index=True)
    is_friction: Mapped[bool] = mapped_column(Boolean, nullable=False, index=True)
    summary: Mapped[str] = mapped_column(Text, nullable=False, default="")
    theme_key: Mapped[str] = mapped_column(String(50), nullable=False)  # normal_support when is_friction is false
    severity: Mapped[int] = mapped_column(Integer, nullable=False, default=1)  # 1-5
    sentiment: Mapped[str] = mapped_column(String(20), nullable=False, default="neutral")
    root_cause: Mapped[str | None] = mapped_column(Text)
    evidence: Mapped[list] = mapped_column(JSON, default=list)
    confidence_score: Mapped[float] = mapped_column(Float, nullable=False, default=0.8)
    reasoning: Mapped[str | None] = mapped_column(Text)
