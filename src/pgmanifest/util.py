from __future__ import annotations

import re
import secrets
import string
from typing import Iterable


_DNS_LABEL_RE = re.compile(r"[^a-z0-9-]+")


def normalize_dns_label(value: str, *, max_length: int = 63) -> str:
    value = value.strip().lower()
    value = _DNS_LABEL_RE.sub("-", value)
    value = re.sub(r"-+", "-", value)
    value = value.strip("-")
    if len(value) > max_length:
        value = value[:max_length].rstrip("-")
    return value


def ensure_unique(items: Iterable[str]) -> list[str]:
    seen: set[str] = set()
    output: list[str] = []
    for item in items:
        if item in seen:
            continue
        seen.add(item)
        output.append(item)
    return output


def generate_password(length: int = 64) -> str:
    alphabet = string.ascii_letters + string.digits
    return "".join(secrets.choice(alphabet) for _ in range(length))
