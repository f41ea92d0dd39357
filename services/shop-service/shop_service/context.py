from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from typing import Optional


@dataclass(frozen=True)
class RequestContext:
    """Correlation data threaded explicitly through a single request."""

    request_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    user_id: Optional[int] = None

    def with_user(self, user_id: int) -> "RequestContext":
        return RequestContext(request_id=self.request_id, user_id=user_id)

    def log_extra(self, **fields) -> dict:
        extra = {"request_id": self.request_id, "user_id": self.user_id}
        extra.update(fields)
        return extra
