import uuid
from datetime import date, datetime, time
from decimal import Decimal

from sqlalchemy.ext.asyncio import AsyncSession

from dcpayroll.models.audit import AuditLog


def _jsonable(value):
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, (date, datetime, time)):
        return value.isoformat()
    if isinstance(value, uuid.UUID):
        return str(value)
    return value


def snapshot(obj, fields) -> dict:
    return {f: _jsonable(getattr(obj, f)) for f in fields}


def write_audit(
    db: AsyncSession,
    *,
    entity_type: str,
    entity_id: uuid.UUID | None,
    action: str,
    user_id: uuid.UUID | None = None,
    project_id: uuid.UUID | None = None,
    old_values: dict | None = None,
    new_values: dict | None = None,
) -> AuditLog:
    log = AuditLog(
        project_id=project_id,
        user_id=user_id,
        entity_type=entity_type,
        entity_id=entity_id,
        action=action,
        old_values={k: _jsonable(v) for k, v in old_values.items()} if old_values else None,
        new_values={k: _jsonable(v) for k, v in new_values.items()} if new_values else None,
    )
    db.add(log)
    return log
