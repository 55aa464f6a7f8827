from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any
from urllib.parse import urlparse

import httpx
from ruamel.yaml import YAML
from ruamel.yaml.error import YAMLError


@dataclass
class FetchResult:
    data: dict[str, Any]
    source: str
    resolved_source: str


def is_url(value: str) -> bool:
    parsed = urlparse(value)
    return parsed.scheme in {"http", "https"}


def github_blob_to_raw(url: str) -> str:
    parsed = urlparse(url)
    if parsed.netloc not in {"github.com", "www.github.com"}:
        return url
    parts = parsed.path.lstrip("/").split("/")
    if len(parts) < 5:
        return url
    if parts[2] != "blob":
        return url
    org, repo, _, ref = parts[:4]
    rest = "/".join(parts[4:])
    return f"https://raw.githubusercontent.com/{org}/{repo}/{ref}/{rest}"


def parse_document(text: str, origin: str) -> dict[str, Any]:
    # JSON is a subset of YAML, but json gives clearer errors for .json files
    if origin.endswith(".json"):
        try:
            data = json.loads(text)
        except json.JSONDecodeError as exc:
            raise RuntimeError(f"{origin} is not valid JSON") from exc
    else:
        try:
            data = YAML(typ="safe").load(text)
        except YAMLError as exc:
            raise RuntimeError(f"{origin} is not valid YAML: {exc}") from exc
    if not isinstance(data, dict):
        raise RuntimeError("Cluster document must be an object at the top level")
    return data


def load_document(source: str) -> FetchResult:
    if is_url(source):
        resolved = github_blob_to_raw(source)
        try:
            response = httpx.get(resolved, timeout=20.0)
            response.raise_for_status()
        except httpx.HTTPError as exc:
            raise RuntimeError(f"Failed to fetch cluster document from {resolved}: {exc}") from exc
        data = parse_document(response.text, urlparse(resolved).path)
        return FetchResult(data=data, source=source, resolved_source=resolved)

    path = Path(source)
    if not path.exists():
        raise RuntimeError(f"File not found: {path}")
    try:
        raw = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise RuntimeError(f"Unable to read file: {path}") from exc
    data = parse_document(raw, str(path))
    return FetchResult(data=data, source=str(path), resolved_source=str(path))
