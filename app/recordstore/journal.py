import json

from flask import g, has_app_context
from sqlalchemy.orm import Session

from app.recordstore.events import StoreNotification
from app.recordstore.models import StoreEvent


def current_request_id() -> str | None:
    if not has_app_context():
        return None
    return getattr(g, "request_id", None)


def record_event(
    s: Session,
    *,
    caller: str,
    event: StoreNotification,
    request_id: str | None = None,
) -> StoreEvent:
    """
    Append-only journal helper. Adds the row to the caller's transaction.
    """
    ev = StoreEvent(
        request_id=request_id or current_request_id(),
        caller=caller,
        event=event.event_name,
        payload_json=json.dumps(event.payload(), sort_keys=True),
    )
    s.add(ev)
    return ev


def read_journal(s: Session, *, event: str | None = None) -> list[StoreEvent]:
    q = s.query(StoreEvent)
    if event:
        q = q.filter(StoreEvent.event == event)
    return q.order_by(StoreEvent.id.asc()).all()
