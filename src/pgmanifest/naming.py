"""Default naming collaborators.

Synthesis never computes labels, secret names or DNS names itself; it asks a
:class:`Naming` value. The defaults below follow the conventions the Spilo
image and external-dns expect, and callers may swap any of them.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable

from .models import ClusterSpec, OperatorConfig
from .util import normalize_dns_label

DNS_NAME_ANNOTATION = "zalando.org/dnsname"
APPLICATION_LABEL = "application"
APPLICATION_NAME = "spilo"


def labels_set(cluster_name: str, config: OperatorConfig) -> dict[str, str]:
    return {
        APPLICATION_LABEL: APPLICATION_NAME,
        config.cluster_name_label: cluster_name,
    }


def credential_secret_name(username: str, cluster_name: str, config: OperatorConfig) -> str:
    name = config.secret_name_template.format(username=username, cluster=cluster_name)
    return name.replace("_", "-").lower()


def team_name(spec: ClusterSpec) -> str:
    if spec.team_id:
        return spec.team_id.lower()
    return spec.name.split("-", 1)[0].lower()


def cluster_dns_name(cluster_name: str, team: str, hosted_zone: str) -> str:
    labels = [normalize_dns_label(cluster_name), normalize_dns_label(team)]
    zone = hosted_zone.strip().strip(".").lower()
    if zone:
        labels.append(zone)
    return ".".join(label for label in labels if label)


@dataclass(frozen=True)
class Naming:
    labels: Callable[[str, OperatorConfig], dict[str, str]] = labels_set
    secret_name: Callable[[str, str, OperatorConfig], str] = credential_secret_name
    team: Callable[[ClusterSpec], str] = team_name
    dns_name: Callable[[str, str, str], str] = cluster_dns_name


DEFAULT_NAMING = Naming()
