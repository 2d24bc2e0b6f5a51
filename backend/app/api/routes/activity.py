from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from app.api.deps import get_db, require_scheduler
from app.models.user import User
from app.schemas.audit import AuditLogOut
from app.services.audit import list_audit_logs

router = APIRouter()


@router.get("/activity/logs", response_model=list[AuditLogOut])
def list_activity_logs(
    record_id: str | None = Query(default=None, max_length=100),
    limit: int = Query(default=500, ge=1, le=500),
    current_user: User = Depends(require_scheduler),
    db: Session = Depends(get_db),
) -> list[AuditLogOut]:
    return list_audit_logs(db, record_id=record_id, limit=limit)
