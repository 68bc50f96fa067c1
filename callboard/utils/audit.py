"""Audit logging utilities."""

from __future__ import annotations

import inspect
import json
import logging
from datetime import datetime, timezone
from functools import wraps
from inspect import iscoroutinefunction
from typing import Any, Callable, Dict

logger = logging.getLogger("callboard.audit")


class AuditLogger:
    """Structured audit logger."""

    def record(self, action: str, actor: str, details: Dict[str, Any]) -> None:
        payload = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "action": action,
            "actor": actor,
            "details": details,
        }
        logger.info(json.dumps(payload, default=str))


audit_logger = AuditLogger()


def audit_log(func: Callable) -> Callable:
    """Decorator that emits structured audit records around a mutating coroutine.

    The actor is taken from the ``acting_user_id`` keyword argument; the
    production and entry ids, when present, are copied into the record.
    """

    signature = inspect.signature(func)

    if not iscoroutinefunction(func):
        raise TypeError("audit_log only wraps coroutine functions")

    @wraps(func)
    async def async_wrapper(*args, **kwargs):
        bound = _bind(signature, args, kwargs)
        actor = _resolve_actor(bound)
        metadata = _build_metadata(func, bound)
        audit_logger.record("start", actor, metadata)
        try:
            result = await func(*args, **kwargs)
        except Exception as exc:
            audit_logger.record("error", actor, metadata | {"error": str(exc)})
            raise
        audit_logger.record("success", actor, metadata)
        return result

    return async_wrapper


def _bind(signature: inspect.Signature, args: tuple, kwargs: Dict[str, Any]) -> Dict[str, Any]:
    try:
        return dict(signature.bind_partial(*args, **kwargs).arguments)
    except TypeError:
        return dict(kwargs)


def _resolve_actor(arguments: Dict[str, Any]) -> str:
    actor = arguments.get("acting_user_id")
    if actor:
        return str(actor)
    return "anonymous"


def _build_metadata(func: Callable, arguments: Dict[str, Any]) -> Dict[str, Any]:
    metadata: Dict[str, Any] = {
        "action": func.__qualname__,
    }
    for key in ("production_id", "entry_id", "user_id"):
        if arguments.get(key) is not None:
            metadata[key] = str(arguments[key])
    data = arguments.get("data") or arguments.get("changes")
    if isinstance(data, dict):
        metadata["payload_keys"] = sorted(data.keys())
    return metadata
