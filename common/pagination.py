"""Page-number pagination over querysets.

Unlike DRF's PageNumberPagination, a page past the end is not an error: it
yields an empty record list together with the real total.
"""

import math
from dataclasses import dataclass, field

from rest_framework.exceptions import ValidationError


@dataclass
class Page:
    """One page of records plus the total number of matching rows."""

    records: list = field(default_factory=list)
    total: int = 0
    page: int = 1
    size: int = 10

    @property
    def pages(self) -> int:
        return math.ceil(self.total / self.size) if self.total else 0


def paginate(queryset, page: int, size: int) -> Page:
    """Slice `queryset` into the requested page (1-based)."""
    if page < 1:
        raise ValidationError({"page": "Must be >= 1."})
    if size < 1:
        raise ValidationError({"size": "Must be >= 1."})

    total = queryset.count()
    offset = (page - 1) * size
    records = list(queryset[offset:offset + size]) if offset < total else []
    return Page(records=records, total=total, page=page, size=size)
