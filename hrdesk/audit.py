from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any

from fastapi import Request
from sqlalchemy.orm import Session

from hrdesk.models import AttendanceEntry, AuditActorType, AuditLog, HiddenAbsentRecord, Holiday, Leave
from hrdesk.security import CallerIdentity, client_ip

logger = logging.getLogger("hrdesk.audit")

AuditedEntity = AttendanceEntry | Leave | Holiday | HiddenAbsentRecord


@dataclass(frozen=True)
class AuditContext:
    """Who performed an administrative action and from where."""

    actor_type: AuditActorType
    actor_id: str
    ip: str | None = None
    user_agent: str | None = None
    request_id: str | None = None


def actor_for(identity: CallerIdentity | None) -> tuple[AuditActorType, str]:
    if identity is None:
        return AuditActorType.SYSTEM, "system"
    if identity.is_admin:
        return AuditActorType.ADMIN, str(identity.employee_id)
    return AuditActorType.EMPLOYEE, str(identity.employee_id)


def audit_context(request: Request, identity: CallerIdentity | None) -> AuditContext:
    actor_type, actor_id = actor_for(identity)
    return AuditContext(
        actor_type=actor_type,
        actor_id=actor_id,
        ip=client_ip(request),
        user_agent=request.headers.get("user-agent"),
        request_id=getattr(request.state, "request_id", None),
    )


def describe_entity(entity: AuditedEntity) -> tuple[str, str | None, dict[str, Any]]:
    """Return the audit entity type, id and the fields that identify the record."""
    if not isinstance(entity, (AttendanceEntry, Leave, Holiday, HiddenAbsentRecord)):
        raise TypeError(f"Unsupported audit entity: {type(entity).__name__}")

    entity_id = str(entity.id) if entity.id is not None else None
    if isinstance(entity, AttendanceEntry):
        return "attendance_entry", entity_id, {
            "employee_id": entity.employee_id,
            "date": entity.date.isoformat(),
            "status": entity.status.value if entity.status is not None else None,
        }
    if isinstance(entity, Leave):
        return "leave", entity_id, {
            "employee_id": entity.employee_id,
            "leave_type": entity.leave_type.value,
            "status": entity.status.value,
            "start_date": entity.start_date.isoformat(),
            "end_date": entity.end_date.isoformat(),
        }
    if isinstance(entity, Holiday):
        return "holiday", entity_id, {
            "date": entity.date.isoformat(),
            "name": entity.name,
            "is_active": entity.is_active,
        }
    return "hidden_absent_record", entity_id, {
        "employee_id": entity.employee_id,
        "date": entity.date.isoformat(),
    }


def log_audit(
    db: Session,
    context: AuditContext,
    *,
    action: str,
    entity: AuditedEntity | None = None,
    entity_type: str | None = None,
    entity_id: str | None = None,
    details: dict[str, Any] | None = None,
    success: bool = True,
) -> None:
    merged_details: dict[str, Any] = {}
    if entity is not None:
        entity_type, entity_id, merged_details = describe_entity(entity)
    merged_details.update(details or {})

    audit = AuditLog(
        ts_utc=datetime.now(timezone.utc),
        actor_type=context.actor_type,
        actor_id=context.actor_id,
        action=action,
        entity_type=entity_type,
        entity_id=entity_id,
        ip=context.ip,
        user_agent=context.user_agent,
        success=success,
        details=merged_details,
    )
    db.add(audit)
    try:
        db.commit()
    except Exception:
        db.rollback()
        logger.exception(
            "audit_log_write_failed",
            extra={
                "request_id": context.request_id,
                "action": action,
                "actor_type": context.actor_type.value,
                "actor_id": context.actor_id,
                "entity_type": entity_type,
                "entity_id": entity_id,
            },
        )
        return

    logger.info(
        "audit_event",
        extra={
            "request_id": context.request_id,
            "action": action,
            "actor_type": context.actor_type.value,
            "actor_id": context.actor_id,
            "entity_type": entity_type,
            "entity_id": entity_id,
            "success": success,
            "details": merged_details,
        },
    )
