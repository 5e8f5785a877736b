import uuid, json
from sqlalchemy.orm import Session
from guesthouse.models.audit_log import AuditLog

def log_audit(db: Session, actor_user_id: str, action: str, entity_type: str, entity_id: str, details: dict | None = None):
    """Queue an audit row on the caller's session; the caller's commit persists it."""
    db.add(AuditLog(
        id=str(uuid.uuid4()),
        actor_user_id=actor_user_id,
        action=action,
        entity_type=entity_type,
        entity_id=entity_id,
        details_json=json.dumps(details or {}, ensure_ascii=False, default=str),
    ))

def list_audit_logs(db: Session, entity_type: str | None = None, entity_id: str | None = None,
                    limit: int = 100, offset: int = 0) -> list[AuditLog]:
    q = db.query(AuditLog)
    if entity_type:
        q = q.filter(AuditLog.entity_type == entity_type)
    if entity_id:
        q = q.filter(AuditLog.entity_id == entity_id)
    return q.order_by(AuditLog.created_at.desc()).limit(min(max(limit, 1), 500)).offset(max(offset, 0)).all()

def audit_out(a: AuditLog) -> dict:
    try:
        details = json.loads(a.details_json or "{}")
    except (json.JSONDecodeError, TypeError):
        details = {}
    return {
        "id": a.id,
        "at": a.created_at.isoformat() if a.created_at else None,
        "actor": a.actor_user_id,
        "action": a.action,
        "entityType": a.entity_type,
        "entityId": a.entity_id,
        "details": details,
    }
