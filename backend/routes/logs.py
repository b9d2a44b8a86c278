# backend/routes/logs.py
from datetime import date, datetime, time
from typing import Literal, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from database import get_db
from models.log import Log
from models.users import User
from schemas.log import LogEntry, LogPage
from utils.tokenJWT import admin_required

router = APIRouter(prefix="/logs", tags=["Logs"])


def _entry(log: Log) -> LogEntry:
    return LogEntry(
        id=log.id,
        ts=log.ts,
        user_id=log.user_id,
        user_email=log.user.email if log.user else None,
        action=log.action,
        resource=log.resource,
        status=log.status,
        ip=log.ip,
        meta=log.meta,
    )


# Audit trail for the dashboard, newest first (Admin only)
@router.get("", response_model=LogPage)
def list_logs(
    action: Optional[str] = Query(None, description="Substring of the action name, e.g. ORDER_PROCESS"),
    resource: Optional[str] = Query(None),
    user_id: Optional[str] = Query(None),
    status: Optional[Literal["SUCCESS", "FAIL"]] = Query(None),
    date_from: Optional[date] = Query(None, description="YYYY-MM-DD"),
    date_to: Optional[date] = Query(None, description="YYYY-MM-DD, inclusive"),
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    db: Session = Depends(get_db),
    current_user: User = Depends(admin_required),
):
    query = db.query(Log)
    if action:
        query = query.filter(Log.action.ilike(f"%{action}%"))
    if resource:
        query = query.filter(Log.resource == resource)
    if user_id:
        query = query.filter(Log.user_id == user_id)
    if status:
        query = query.filter(Log.status == status)
    if date_from:
        query = query.filter(Log.ts >= datetime.combine(date_from, time.min))
    if date_to:
        query = query.filter(Log.ts <= datetime.combine(date_to, time.max))

    total = query.count()
    rows = query.order_by(Log.ts.desc(), Log.id.desc()).offset((page - 1) * page_size).limit(page_size).all()
    return {"items": [_entry(r) for r in rows], "total": total, "page": page, "page_size": page_size}
