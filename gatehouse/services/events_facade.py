# gatehouse/services/events_facade.py
from __future__ import annotations

import json
from datetime import datetime
from typing import Any, Optional

from sqlalchemy.orm import Session

from ..domain.audit import audit_write
from ..models import WorkflowEvent


class WorkflowFacade:
    """
    Stages workflow events without repeating the JSON plumbing.
    Services go through record_change() rather than calling emit directly.
    """

    def emit(
        self,
        db: Session,
        *,
        community_id: Optional[int],
        apartment_id: Optional[int],
        actor_id: Optional[int],
        actor_type: Optional[str],
        event_type: str,
        payload: dict[str, Any] | None = None,
    ) -> WorkflowEvent:
        if not event_type:
            raise ValueError("event_type required")

        row = WorkflowEvent(
            community_id=community_id,
            apartment_id=apartment_id,
            actor_id=actor_id,
            actor_type=str(actor_type) if actor_type is not None else None,
            event_type=str(event_type),
            payload_json=json.dumps(payload or {}, sort_keys=True, default=str),
            created_at=datetime.utcnow(),
        )
        # staged only; committed by the surrounding atomic() block
        db.add(row)
        return row


wf = WorkflowFacade()


def record_change(
    db: Session,
    *,
    actor: Any,
    community_id: Optional[int],
    apartment_id: Optional[int],
    action: str,
    entity_type: str,
    entity_id: Any,
    before: Optional[dict[str, Any]] = None,
    after: Optional[dict[str, Any]] = None,
    payload: Optional[dict[str, Any]] = None,
) -> None:
    """Audit row plus workflow event for one mutation, staged on the same session."""
    actor_type = getattr(getattr(actor, "type", None), "value", None)
    audit_write(
        db,
        community_id=community_id,
        actor_id=getattr(actor, "id", None),
        actor_type=actor_type,
        action=action,
        entity_type=entity_type,
        entity_id=entity_id,
        before=before,
        after=after,
    )
    wf.emit(
        db,
        community_id=community_id,
        apartment_id=apartment_id,
        actor_id=getattr(actor, "id", None),
        actor_type=actor_type,
        event_type=action,
        payload={"entity_type": entity_type, "entity_id": str(entity_id), **(payload or {})},
    )
