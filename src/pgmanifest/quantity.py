from __future__ import annotations

import re
from decimal import Decimal

from kubernetes.utils import parse_quantity as _k8s_parse_quantity

from .errors import QuantityError
from .models import Resources

_QUANTITY_RE = re.compile(r"[+-]?[0-9.]+([eE][-+]?[0-9]+|[numkMGTPE]|[KMGTPE]i)?")


def parse_quantity(field: str, value: str) -> Decimal:
    text = value.strip()
    if not text:
        raise QuantityError(field, value, "empty quantity")
    if not _QUANTITY_RE.fullmatch(text):
        raise QuantityError(field, value, "does not match the Kubernetes quantity format")
    try:
        parsed = _k8s_parse_quantity(text)
    except (ValueError, ArithmeticError) as exc:
        raise QuantityError(field, value, str(exc)) from exc
    # Decimal accepts NaN and Infinity, the platform does not
    if not parsed.is_finite():
        raise QuantityError(field, value, "not a finite number")
    return parsed


def checked_quantity(field: str, value: str) -> str:
    parse_quantity(field, value)
    return value.strip()


def resource_list(resources: Resources, prefix: str = "resources") -> dict[str, str]:
    requests: dict[str, str] = {}
    if resources.cpu:
        requests["cpu"] = checked_quantity(f"{prefix}.cpu", resources.cpu)
    if resources.memory:
        requests["memory"] = checked_quantity(f"{prefix}.memory", resources.memory)
    return requests
