from datetime import datetime

from pydantic import BaseModel


class AuditLogOut(BaseModel):
    id: str
    user_id: str | None
    action: str
    table_affected: str
    record_id: str | None
    old_values: dict | None
    new_values: dict | None
    description: str
    created_at: datetime

    model_config = {"from_attributes": True}
