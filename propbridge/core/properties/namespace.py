from __future__ import annotations


def resolve(parent: str, name: str) -> str:
    """Dotted, lower-cased path of ``name`` under ``parent``.

    resolve("", "Target") -> "target"
    resolve("target", "IP") -> "target.ip"
    """
    full = ".".join([parent or "", (name or "").lower()])
    return full.strip(".")
