"""
commission_engines.tracer -- COMMISSION_ENGINE_TRACE records for the calculators.

``@traced_engine`` logs, at DEBUG, which calculator ran, its version, a
fingerprint of the inputs and a fingerprint of the result.  A disputed
amount on a commission document can then be matched to the exact worksheet
that produced it without logging the figures themselves.

Fingerprints are SHA-256 over a canonical rendering, cut to 16 hex chars.
Decimals are normalized first, so ``Decimal("3000")`` and
``Decimal("3000.00")`` fingerprint alike.
"""

from __future__ import annotations

import dataclasses
import functools
import hashlib
import inspect
import time
from collections.abc import Callable, Mapping
from decimal import Decimal
from enum import Enum
from typing import Any

from commission_kernel.logging_config import get_logger

_logger = get_logger("engines.tracer")

FINGERPRINT_LENGTH = 16


def _canonical(value: Any) -> str:
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, Decimal):
        return format(value.normalize(), "f")
    if isinstance(value, Enum):
        return _canonical(value.value)
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return _canonical({f.name: getattr(value, f.name) for f in dataclasses.fields(value)})
    if isinstance(value, Mapping):
        return "{" + ",".join(f"{k}:{_canonical(value[k])}" for k in sorted(value)) + "}"
    if isinstance(value, (list, tuple)):
        return "[" + ",".join(_canonical(v) for v in value) + "]"
    return str(value)


def fingerprint(value: Any) -> str:
    return hashlib.sha256(_canonical(value).encode("utf-8")).hexdigest()[:FINGERPRINT_LENGTH]


def compute_input_fingerprint(fields: tuple[str, ...], arguments: Mapping[str, Any]) -> str:
    """Fingerprint of the named arguments; a missing one counts as null."""
    return fingerprint({name: arguments.get(name) for name in fields})


def traced_engine(
    engine_name: str,
    engine_version: str,
    fingerprint_fields: tuple[str, ...] = (),
) -> Callable:
    """
    Trace every call of a pure calculator.

    ``fingerprint_fields`` names the parameters that go into the input
    fingerprint.  Positional and keyword calls fingerprint the same.
    """

    def decorator(func: Callable) -> Callable:
        signature = inspect.signature(func)

        @functools.wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            input_fp = ""
            if fingerprint_fields:
                bound = signature.bind(*args, **kwargs)
                bound.apply_defaults()
                input_fp = compute_input_fingerprint(fingerprint_fields, bound.arguments)

            started = time.monotonic()
            result = func(*args, **kwargs)

            _logger.debug(
                "COMMISSION_ENGINE_TRACE",
                extra={
                    "engine_name": engine_name,
                    "engine_version": engine_version,
                    "function": func.__qualname__,
                    "input_fingerprint": input_fp,
                    "result_fingerprint": fingerprint(result),
                    "duration_ms": round((time.monotonic() - started) * 1000, 2),
                },
            )
            return result

        return wrapper

    return decorator
