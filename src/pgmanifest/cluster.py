from __future__ import annotations

import dataclasses
import re
from typing import Any, Callable

from .errors import ConfigurationError
from .models import ClusterSpec, OperatorConfig, PgUser, Resources, Volume
from .util import ensure_unique, generate_password


DEFAULT_POSTGRES_VERSION = "9.6"

_USERNAME_RE = re.compile(r"[a-z0-9]([-_a-z0-9]*[a-z0-9])?(\.[a-z0-9]([-_a-z0-9]*[a-z0-9])?)*")


def _checked_username(value: Any) -> str:
    name = str(value)
    if not _USERNAME_RE.fullmatch(name):
        raise ConfigurationError(f"Invalid user name: {name!r}")
    return name


def _as_mapping(value: Any, where: str) -> dict[str, Any]:
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise ConfigurationError(f"{where} must be a mapping")
    return value


def _as_str(value: Any) -> str:
    if value is None:
        return ""
    return str(value).strip()


def _extract_resources(spec: dict[str, Any]) -> Resources:
    raw = _as_mapping(spec.get("resources"), "spec.resources")
    # accept both the flat form and the Kubernetes-style requests block
    requests = _as_mapping(raw.get("requests"), "spec.resources.requests") or raw
    return Resources(cpu=_as_str(requests.get("cpu")), memory=_as_str(requests.get("memory")))


def _extract_volume(spec: dict[str, Any]) -> Volume:
    raw = _as_mapping(spec.get("volume"), "spec.volume")
    size = _as_str(raw.get("size"))
    if not size:
        raise ConfigurationError("spec.volume.size is required")
    storage_class = raw.get("storageClass")
    if storage_class is None:
        storage_class = raw.get("storage_class")
    return Volume(size=size, storage_class=_as_str(storage_class))


def _extract_version(spec: dict[str, Any]) -> str:
    postgresql = _as_mapping(spec.get("postgresql"), "spec.postgresql")
    version = postgresql.get("version") or spec.get("pgVersion") or DEFAULT_POSTGRES_VERSION
    # an unquoted 9.10 loads as the float 9.1
    if isinstance(version, bool) or not isinstance(version, (str, int)):
        raise ConfigurationError("spec.postgresql.version must be a quoted string such as \"12\"")
    return _as_str(version)


def _extract_instances(spec: dict[str, Any]) -> int:
    raw = spec.get("numberOfInstances", 1)
    if isinstance(raw, bool):
        raise ConfigurationError("spec.numberOfInstances must be an integer")
    try:
        return int(raw)
    except (TypeError, ValueError) as exc:
        raise ConfigurationError("spec.numberOfInstances must be an integer") from exc


def _extract_users(spec: dict[str, Any]) -> dict[str, PgUser]:
    users: dict[str, PgUser] = {}
    raw_users = _as_mapping(spec.get("users"), "spec.users")
    for username, value in raw_users.items():
        name = _checked_username(username)
        if isinstance(value, dict):
            flags = value.get("flags") or []
            password = _as_str(value.get("password"))
        else:
            flags = value or []
            password = ""
        if not isinstance(flags, list):
            raise ConfigurationError(f"Flags for user {name} must be a list")
        users[name] = PgUser(
            name=name,
            password=password,
            flags=ensure_unique(str(flag).lower() for flag in flags),
        )

    human_users = spec.get("humanUsers") or []
    if not isinstance(human_users, list):
        raise ConfigurationError("spec.humanUsers must be a list")
    for username in human_users:
        name = _checked_username(username)
        if name in users:
            raise ConfigurationError(f"User {name} is declared as both robot and human user")
        users[name] = PgUser(name=name, password="", flags=["login"], human=True)
    return users


def parse_cluster(data: dict[str, Any]) -> ClusterSpec:
    if not isinstance(data, dict):
        raise ConfigurationError("Cluster document must be a mapping at the top level")
    metadata = _as_mapping(data.get("metadata"), "metadata")
    spec = _as_mapping(data.get("spec"), "spec")

    name = _as_str(metadata.get("name"))
    if not name:
        raise ConfigurationError("metadata.name is required")
    namespace = _as_str(metadata.get("namespace")) or "default"

    return ClusterSpec(
        name=name,
        namespace=namespace,
        postgres_version=_extract_version(spec),
        number_of_instances=_extract_instances(spec),
        resources=_extract_resources(spec),
        volume=_extract_volume(spec),
        users=_extract_users(spec),
        team_id=_as_str(spec.get("teamId")),
    )


def init_users(
    spec: ClusterSpec,
    config: OperatorConfig,
    password_factory: Callable[[], str] = generate_password,
) -> ClusterSpec:
    """Return a copy of ``spec`` with system users added and robot passwords filled.

    Human users (declared via ``humanUsers``) authenticate through PAM and keep
    an empty password, so no credential secret is generated for them.
    """
    users: dict[str, PgUser] = {}
    system_users = (
        (config.super_username, "superuser"),
        (config.replication_username, "replication"),
    )
    for username, flag in system_users:
        if username:
            users[username] = PgUser(name=username, password=password_factory(), flags=[flag])

    for username, user in spec.users.items():
        if username in users:
            raise ConfigurationError(f"User {username} collides with a system user")
        if user.human:
            users[username] = dataclasses.replace(user, flags=list(user.flags))
            continue
        users[username] = dataclasses.replace(
            user,
            password=user.password or password_factory(),
            flags=list(user.flags),
        )
    return dataclasses.replace(spec, users=users)
