from __future__ import annotations

import base64
import logging
from typing import Any, Iterable, Mapping

from .config import require
from .errors import ConfigurationError
from .models import (
    ClusterSpec,
    DefaultStorageClass,
    NamedStorageClass,
    OperatorConfig,
    PgUser,
    StorageClass,
    Volume,
)
from .naming import DEFAULT_NAMING, DNS_NAME_ANNOTATION, Naming
from .quantity import checked_quantity, resource_list

logger = logging.getLogger("pgmanifest")

DATA_VOLUME_NAME = "pgdata"
DATA_MOUNT_PATH = "/home/postgres/pgdata"
PGROOT = "/home/postgres/pgdata/pgroot"
PATRONI_API_PORT = 8008
POSTGRES_PORT = 5432
HTTP_PORT = 8080
TERMINATION_GRACE_PERIOD_SECONDS = 30

STORAGE_CLASS_ANNOTATION = "volume.beta.kubernetes.io/storage-class"
DEFAULT_STORAGE_CLASS_ANNOTATION = "volume.alpha.kubernetes.io/storage-class"

# Parsed by the Spilo supervisor inside the container; keep keys and rule order.
_SPILO_CONFIGURATION = """
postgresql:
  bin_dir: /usr/lib/postgresql/{pg_version}/bin
bootstrap:
  initdb:
  - auth-host: md5
  - auth-local: trust
  users:
    {pam_role}:
      password: NULL
      options:
        - createdb
        - nologin
  pg_hba:
  - hostnossl all all all reject
  - hostssl   all +{pam_role} all pam
  - hostssl   all all all md5"""


def _metadata(spec: ClusterSpec, config: OperatorConfig, naming: Naming) -> dict[str, Any]:
    return {
        "name": spec.name,
        "namespace": spec.namespace,
        "labels": naming.labels(spec.name, config),
    }


def spilo_configuration(pg_version: str, pam_role_name: str) -> str:
    return _SPILO_CONFIGURATION.format(pg_version=pg_version, pam_role=pam_role_name)


def _field_ref(name: str, field_path: str) -> dict[str, Any]:
    return {
        "name": name,
        "valueFrom": {"fieldRef": {"apiVersion": "v1", "fieldPath": field_path}},
    }


def _secret_ref(name: str, secret_name: str, key: str = "password") -> dict[str, Any]:
    return {
        "name": name,
        "valueFrom": {"secretKeyRef": {"name": secret_name, "key": key}},
    }


def build_env(
    spec: ClusterSpec,
    config: OperatorConfig,
    naming: Naming = DEFAULT_NAMING,
) -> list[dict[str, Any]]:
    superuser_secret = naming.secret_name(config.super_username, spec.name, config)
    standby_secret = naming.secret_name(config.replication_username, spec.name, config)
    return [
        {"name": "SCOPE", "value": spec.name},
        {"name": "PGROOT", "value": PGROOT},
        {"name": "ETCD_HOST", "value": config.etcd_host},
        _field_ref("POD_IP", "status.podIP"),
        _field_ref("POD_NAMESPACE", "metadata.namespace"),
        _secret_ref("PGPASSWORD_SUPERUSER", superuser_secret),
        _secret_ref("PGPASSWORD_STANDBY", standby_secret),
        {"name": "PAM_OAUTH2", "value": config.pam_configuration},
        {
            "name": "SPILO_CONFIGURATION",
            "value": spilo_configuration(spec.postgres_version, config.pam_role_name),
        },
    ]


def build_container(
    spec: ClusterSpec,
    config: OperatorConfig,
    requests: dict[str, str],
    naming: Naming = DEFAULT_NAMING,
) -> dict[str, Any]:
    return {
        "name": spec.name,
        "image": require(config, "docker_image"),
        "imagePullPolicy": "Always",
        "resources": {"requests": requests},
        "ports": [
            {"containerPort": PATRONI_API_PORT, "protocol": "TCP"},
            {"containerPort": POSTGRES_PORT, "protocol": "TCP"},
            {"containerPort": HTTP_PORT, "protocol": "TCP"},
        ],
        "volumeMounts": [{"name": DATA_VOLUME_NAME, "mountPath": DATA_MOUNT_PATH}],
        "env": build_env(spec, config, naming),
    }


def build_pod_template(
    spec: ClusterSpec,
    config: OperatorConfig,
    naming: Naming = DEFAULT_NAMING,
) -> dict[str, Any]:
    requests = resource_list(spec.resources)
    container = build_container(spec, config, requests, naming)
    return {
        "metadata": {
            "labels": naming.labels(spec.name, config),
            "namespace": spec.namespace,
        },
        "spec": {
            "serviceAccountName": config.service_account_name,
            "terminationGracePeriodSeconds": TERMINATION_GRACE_PERIOD_SECONDS,
            "containers": [container],
        },
    }


def storage_class_annotations(choice: StorageClass) -> dict[str, str]:
    if isinstance(choice, NamedStorageClass):
        return {STORAGE_CLASS_ANNOTATION: choice.name}
    if isinstance(choice, DefaultStorageClass):
        return {DEFAULT_STORAGE_CLASS_ANNOTATION: "default"}
    raise TypeError(f"Unsupported storage class choice: {choice!r}")


def volume_claim_template(volume: Volume) -> dict[str, Any]:
    size = checked_quantity("volume.size", volume.size)
    return {
        "metadata": {
            "name": DATA_VOLUME_NAME,
            "annotations": storage_class_annotations(volume.storage_class_choice),
        },
        "spec": {
            "accessModes": ["ReadWriteOnce"],
            "resources": {"requests": {"storage": size}},
        },
    }


def render_statefulset(
    spec: ClusterSpec,
    config: OperatorConfig,
    naming: Naming = DEFAULT_NAMING,
) -> dict[str, Any]:
    pod_template = build_pod_template(spec, config, naming)
    claim_template = volume_claim_template(spec.volume)
    logger.debug(
        "Rendered statefulset %s/%s with %d instance(s)",
        spec.namespace,
        spec.name,
        spec.number_of_instances,
    )
    return {
        "apiVersion": "apps/v1",
        "kind": "StatefulSet",
        "metadata": _metadata(spec, config, naming),
        "spec": {
            "replicas": spec.number_of_instances,
            "serviceName": spec.name,
            "selector": {"matchLabels": naming.labels(spec.name, config)},
            "template": pod_template,
            "volumeClaimTemplates": [claim_template],
        },
    }


def is_credentialed(user: PgUser) -> bool:
    return bool(user.password)


def credentialed_users(users: Mapping[str, PgUser]) -> dict[str, PgUser]:
    return {username: user for username, user in users.items() if is_credentialed(user)}


def _b64(value: str) -> str:
    return base64.b64encode(value.encode("utf-8")).decode("ascii")


def render_secret(
    spec: ClusterSpec,
    config: OperatorConfig,
    username: str,
    user: PgUser,
    naming: Naming = DEFAULT_NAMING,
) -> dict[str, Any]:
    return {
        "apiVersion": "v1",
        "kind": "Secret",
        "metadata": {
            "name": naming.secret_name(username, spec.name, config),
            "namespace": spec.namespace,
            "labels": naming.labels(spec.name, config),
        },
        "type": "Opaque",
        "data": {
            "username": _b64(user.name),
            "password": _b64(user.password),
        },
    }


def render_user_secrets(
    spec: ClusterSpec,
    config: OperatorConfig,
    naming: Naming = DEFAULT_NAMING,
) -> dict[str, dict[str, Any]]:
    secrets = {
        username: render_secret(spec, config, username, user, naming)
        for username, user in credentialed_users(spec.users).items()
    }
    skipped = len(spec.users) - len(secrets)
    if skipped:
        logger.debug("Skipped %d password-less user(s) for %s", skipped, spec.name)
    return secrets


def render_service(
    spec: ClusterSpec,
    config: OperatorConfig,
    naming: Naming = DEFAULT_NAMING,
    allowed_source_ranges: Iterable[str] | None = None,
) -> dict[str, Any]:
    if allowed_source_ranges is None:
        allowed_source_ranges = config.allowed_source_ranges
    metadata = _metadata(spec, config, naming)
    metadata["annotations"] = {
        DNS_NAME_ANNOTATION: naming.dns_name(spec.name, naming.team(spec), config.db_hosted_zone),
    }
    return {
        "apiVersion": "v1",
        "kind": "Service",
        "metadata": metadata,
        "spec": {
            "type": "LoadBalancer",
            "ports": [{"port": POSTGRES_PORT, "targetPort": POSTGRES_PORT}],
            "loadBalancerSourceRanges": list(allowed_source_ranges),
        },
    }


def render_endpoints(
    spec: ClusterSpec,
    config: OperatorConfig,
    naming: Naming = DEFAULT_NAMING,
) -> dict[str, Any]:
    return {
        "apiVersion": "v1",
        "kind": "Endpoints",
        "metadata": _metadata(spec, config, naming),
    }


def secret_filename(username: str) -> str:
    return f"secret-{username.replace('_', '-')}.yaml"


def render_all(
    spec: ClusterSpec,
    config: OperatorConfig,
    naming: Naming = DEFAULT_NAMING,
) -> dict[str, dict[str, Any]]:
    statefulset = render_statefulset(spec, config, naming)
    service = render_service(spec, config, naming)
    endpoints = render_endpoints(spec, config, naming)
    secrets = render_user_secrets(spec, config, naming)

    manifests: dict[str, dict[str, Any]] = {
        "statefulset.yaml": statefulset,
        "service.yaml": service,
        "endpoints.yaml": endpoints,
    }
    owners: dict[str, str] = {}
    for username in sorted(secrets):
        secret = secrets[username]
        for key in (secret_filename(username), secret["metadata"]["name"]):
            if key in owners:
                raise ConfigurationError(
                    f"Users {owners[key]} and {username} map to the same secret {key}"
                )
            owners[key] = username
        manifests[secret_filename(username)] = secret
    logger.debug("Rendered %d manifest(s) for %s", len(manifests), spec.name)
    return manifests
