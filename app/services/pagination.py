from dataclasses import dataclass, field
import math
from typing import Generic, List, TypeVar

from sqlalchemy import Select, func, select
from sqlalchemy.orm import Session

from app.core import ValidationError

T = TypeVar("T")


@dataclass
class Page(Generic[T]):
    items: List[T] = field(default_factory=list)
    page: int = 1
    limit: int = 20
    total: int = 0

    @property
    def total_pages(self) -> int:
        return math.ceil(self.total / self.limit) if self.limit else 0


def paginate(session: Session, stmt: Select, page: int, limit: int) -> Page:
    """Run `stmt` for one 1-based page and count the full result."""
    if page < 1 or limit < 1:
        raise ValidationError("page and limit must be >= 1")

    total = session.scalar(select(func.count()).select_from(stmt.order_by(None).subquery()))
    items = list(session.scalars(stmt.offset((page - 1) * limit).limit(limit)))
    return Page(items=items, page=page, limit=limit, total=total or 0)
