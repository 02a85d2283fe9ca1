from __future__ import annotations

import logging
from functools import wraps
from typing import Callable

logger = logging.getLogger(__name__)


def best_effort(action: str) -> Callable:
    """Run a side effect at most once and never let it fail the caller.

    The wrapped method receives the triggering request as its first argument;
    any exception is logged with that request's id and discarded. The wrapper
    always returns ``None``.
    """

    def decorator(fn: Callable) -> Callable:
        @wraps(fn)
        def wrapper(self, request, *args, **kwargs) -> None:
            request_id = getattr(request, "request_id", None)
            try:
                fn(self, request, *args, **kwargs)
            except Exception:
                logger.exception(
                    "Failed to %s for request %s",
                    action,
                    request_id,
                    extra={"request_id": request_id},
                )
            return None

        return wrapper

    return decorator
