import uuid, json
import logging
from sqlalchemy.orm import Session
from buspos.models.audit_log import AuditLog

logger = logging.getLogger(__name__)


def log_audit(db: Session, actor: str, action: str, entity_type: str, entity_id: str, details: dict | None = None):
    """Stage an audit row in the caller's transaction; the caller commits."""
    db.add(AuditLog(
        id=str(uuid.uuid4()),
        actor=actor,
        action=action,
        entity_type=entity_type,
        entity_id=entity_id,
        details_json=json.dumps(details or {}, ensure_ascii=False, default=str),
    ))
    logger.info("audit %s %s/%s by %s", action, entity_type, entity_id, actor)


def audit_trail(db: Session, entity_type: str, entity_id: str) -> list[dict]:
    rows = (
        db.query(AuditLog)
        .filter(AuditLog.entity_type == entity_type, AuditLog.entity_id == entity_id)
        .order_by(AuditLog.created_at.asc())
        .all()
    )
    return [{
        "at": a.created_at.isoformat(),
        "action": a.action,
        "actor": a.actor,
        "details": json.loads(a.details_json or "{}"),
    } for a in rows]
