from __future__ import annotations

from dataclasses import dataclass, field
from typing import Union


@dataclass(frozen=True)
class Resources:
    cpu: str = ""
    memory: str = ""


@dataclass(frozen=True)
class NamedStorageClass:
    name: str


@dataclass(frozen=True)
class DefaultStorageClass:
    pass


StorageClass = Union[NamedStorageClass, DefaultStorageClass]


def storage_class_choice(name: str | None) -> StorageClass:
    if name:
        return NamedStorageClass(name=name)
    return DefaultStorageClass()


@dataclass(frozen=True)
class Volume:
    size: str
    storage_class: str = ""

    @property
    def storage_class_choice(self) -> StorageClass:
        return storage_class_choice(self.storage_class)


@dataclass
class PgUser:
    name: str
    password: str = ""
    flags: list[str] = field(default_factory=list)
    human: bool = False


@dataclass(frozen=True)
class ClusterSpec:
    name: str
    namespace: str
    postgres_version: str
    number_of_instances: int
    resources: Resources
    volume: Volume
    users: dict[str, PgUser] = field(default_factory=dict)
    team_id: str = ""


@dataclass(frozen=True)
class OperatorConfig:
    docker_image: str
    etcd_host: str = ""
    service_account_name: str = "operator"
    pam_configuration: str = ""
    pam_role_name: str = "zalandos"
    super_username: str = "postgres"
    replication_username: str = "replication"
    db_hosted_zone: str = "db.example.com"
    allowed_source_ranges: tuple[str, ...] = ()
    secret_name_template: str = "{username}.{cluster}.credentials.postgresql.acid.zalan.do"
    cluster_name_label: str = "spilo-cluster"
