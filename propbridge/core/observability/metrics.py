from __future__ import annotations

from collections import Counter
from typing import Dict

from prometheus_client import Counter as PromCounter

_COUNTS = Counter()

_PROM_MARSHAL = PromCounter(
    "propbridge_marshal_total",
    "Records marshaled into property sets",
)
_PROM_UNMARSHAL = PromCounter(
    "propbridge_unmarshal_total",
    "Unmarshal calls by outcome",
    ["outcome"],
)
_PROM_COERCION_ERRORS = PromCounter(
    "propbridge_coercion_errors_total",
    "Coercion failures by error kind",
    ["kind"],
)
_PROM_SCHEMA_WARNINGS = PromCounter(
    "propbridge_schema_warnings_total",
    "Discarded or defaulted field metadata found while building schemas",
)
_PROM_MISSING = PromCounter(
    "propbridge_missing_properties_total",
    "Exposed fields with no matching property during unmarshal",
)
_PROM_COLLISIONS = PromCounter(
    "propbridge_namespace_collisions_total",
    "Properties overwritten by another field resolving to the same name",
)


def reset_metrics() -> None:
    """
    Test helper: clears the in-process counters.
    Prometheus counters are cumulative and are left alone.
    """
    _COUNTS.clear()


def inc_marshal() -> None:
    _COUNTS["marshal_total"] += 1
    _PROM_MARSHAL.inc()


def inc_unmarshal(outcome: str) -> None:
    _COUNTS["unmarshal_total"] += 1
    _COUNTS[f"unmarshal_{outcome}"] += 1
    _PROM_UNMARSHAL.labels(outcome=outcome).inc()


def inc_coercion_error(kind: str) -> None:
    _COUNTS[f"coercion_error_{kind}"] += 1
    _PROM_COERCION_ERRORS.labels(kind=kind).inc()


def inc_schema_warnings(value: int = 1) -> None:
    if value <= 0:
        return
    _COUNTS["schema_warnings"] += int(value)
    _PROM_SCHEMA_WARNINGS.inc(value)


def inc_missing_property() -> None:
    _COUNTS["missing_properties"] += 1
    _PROM_MISSING.inc()


def inc_collision() -> None:
    _COUNTS["namespace_collisions"] += 1
    _PROM_COLLISIONS.inc()


def snapshot() -> Dict[str, int]:
    return dict(_COUNTS)
