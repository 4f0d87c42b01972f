"""
Reusable query helpers for lookups and paginated listings.

These functions eliminate repetitive 404 and offset/limit handling across routers.
"""
from typing import Callable, Optional

from sqlalchemy.orm import Query, Session

from .errors import NotFound


def get_or_404(db: Session, model, record_id: int, label: str = "Record"):
    """Fetch a record by primary key, or raise 404."""
    record = db.query(model).filter(model.id == record_id).first()
    if not record:
        raise NotFound(f"{label} not found")
    return record


def paginate(query: Query, page: int, per_page: int, serialize: Optional[Callable] = None) -> dict:
    """Apply offset/limit and return the listing shape shared by the admin endpoints."""
    total = query.order_by(None).count()
    items = query.offset((page - 1) * per_page).limit(per_page).all()
    if serialize:
        items = [serialize(item) for item in items]
    return {
        "items": items,
        "total": total,
        "page": page,
        "per_page": per_page,
        "pages": (total + per_page - 1) // per_page,
    }
