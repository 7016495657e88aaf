import uuid
from datetime import date

from sqlalchemy import JSON, Date, ForeignKey, Integer, String, UniqueConstraint, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from friction_intel.models.base import Base, TimestampMixin, generate_uuid


class AccountSnapshot(TimestampMixin, Base):
    __tablename__ = "account_snapshots"
    __table_args__ = (UniqueConstraint("account_id", "snapshot_date", name="uq_account_snapshot_day"),)

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=generate_uuid)
    account_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("accounts.id"), nullable=False, index=True)
    snapshot_date: Mapped[date] = mapped_column(Date, nullable=False, index=True)
    ofi_score: Mapped[int] = mapped_column(Integer, nullable=False)  # 0-100, higher is worse
    friction_card_count: Mapped[int] = mapped_column(Integer, nullable=False)
    high_severity_count: Mapped[int] = mapped_column(Integer, nullable=False)
    case_volume: Mapped[int] = mapped_column(Integer, nullable=False)
    top_themes: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    trend_vs_prior_period: Mapped[int | None] = mapped_column(Integer)
    trend_direction: Mapped[str] = mapped_column(String(20), nullable=False, default="stable")  # improving, stable, worsening
    score_breakdown: Mapped[dict] = mapped_column(JSON, nullable=False, default=dict)
