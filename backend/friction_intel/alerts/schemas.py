from datetime import datetime
from uuid import UUID

from pydantic import BaseModel


class AlertResponse(BaseModel):
    id: UUID
    account_id: UUID
    alert_type: str
    severity: str
    title: str
    message: str
    evidence: dict | None
    recommended_action: str | None
    created_at: datetime

    model_config = {"from_attributes": True}
