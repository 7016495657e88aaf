import uuid

from sqlalchemy import Integer, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from friction_intel.models.base import Base, TimestampMixin, generate_uuid


class Account(TimestampMixin, Base):
    __tablename__ = "accounts"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=generate_uuid)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    external_id: Mapped[str | None] = mapped_column(String(100), unique=True)  # CRM account id
    status: Mapped[str | None] = mapped_column(String(50), default="active")  # active, at_risk, churning, churned, cancelled
    health_score: Mapped[int | None] = mapped_column(Integer)  # 0-100, higher is healthier
    nps_score: Mapped[int | None] = mapped_column(Integer)  # 0-10
