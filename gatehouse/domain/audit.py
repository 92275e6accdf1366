# gatehouse/domain/audit.py
from __future__ import annotations

import json
from datetime import datetime
from typing import Any, Optional

from sqlalchemy.orm import Session

from ..models import AuditEvent


def _dumps(v: Optional[dict[str, Any]]) -> Optional[str]:
    if v is None:
        return None
    return json.dumps(v, sort_keys=True, default=str)


def audit_write(
    db: Session,
    *,
    community_id: Optional[int],
    actor_id: Optional[int],
    actor_type: Optional[str],
    action: str,
    entity_type: str,
    entity_id: Any,
    before: Optional[dict[str, Any]] = None,
    after: Optional[dict[str, Any]] = None,
) -> AuditEvent:
    """
    Stage one audit row on the caller's session.

    Never commits: the workflow step that owns the transaction commits the
    audit row together with the change it describes.
    """
    row = AuditEvent(
        community_id=community_id,
        actor_id=actor_id,
        actor_type=str(actor_type) if actor_type is not None else None,
        action=action,
        entity_type=entity_type,
        entity_id=str(entity_id),
        before_json=_dumps(before),
        after_json=_dumps(after),
        created_at=datetime.utcnow(),
    )
    db.add(row)
    return row
