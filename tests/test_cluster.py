import pytest

from pgmanifest.cluster import init_users, parse_cluster
from pgmanifest.errors import ConfigurationError
from pgmanifest.models import DefaultStorageClass, NamedStorageClass, OperatorConfig

SAMPLE_CLUSTER = {
    "apiVersion": "acid.zalan.do/v1",
    "kind": "Postgresql",
    "metadata": {"name": "acid-test", "namespace": "databases"},
    "spec": {
        "teamId": "ACID",
        "postgresql": {"version": "12"},
        "numberOfInstances": 2,
        "resources": {"requests": {"cpu": "100m", "memory": "256Mi"}},
        "volume": {"size": "10Gi", "storageClass": "ssd"},
        "users": {
            "foo_user": ["createdb", "CREATEDB", "login"],
            "app": {"password": "fixed", "flags": []},
        },
        "humanUsers": ["jdoe"],
    },
}


def test_parse_cluster_basic():
    spec = parse_cluster(SAMPLE_CLUSTER)

    assert spec.name == "acid-test"
    assert spec.namespace == "databases"
    assert spec.postgres_version == "12"
    assert spec.number_of_instances == 2
    assert spec.resources.cpu == "100m"
    assert spec.resources.memory == "256Mi"
    assert spec.volume.size == "10Gi"
    assert spec.volume.storage_class_choice == NamedStorageClass(name="ssd")
    assert spec.team_id == "ACID"
    assert spec.users["foo_user"].flags == ["createdb", "login"]
    assert spec.users["app"].password == "fixed"
    assert spec.users["jdoe"].human is True
    assert spec.users["jdoe"].password == ""


def test_parse_cluster_defaults():
    spec = parse_cluster({"metadata": {"name": "acid-min"}, "spec": {"volume": {"size": "1Gi"}}})

    assert spec.namespace == "default"
    assert spec.postgres_version == "9.6"
    assert spec.number_of_instances == 1
    assert spec.resources.cpu == ""
    assert spec.volume.storage_class_choice == DefaultStorageClass()
    assert spec.users == {}


def test_parse_cluster_flat_resources():
    spec = parse_cluster(
        {
            "metadata": {"name": "acid-flat"},
            "spec": {"resources": {"cpu": "1", "memory": "1Gi"}, "volume": {"size": "1Gi"}},
        }
    )
    assert spec.resources.cpu == "1"
    assert spec.resources.memory == "1Gi"


@pytest.mark.parametrize(
    "document, message",
    [
        ({"spec": {"volume": {"size": "1Gi"}}}, "metadata.name"),
        ({"metadata": {"name": "a"}, "spec": {}}, "volume.size"),
        ({"metadata": {"name": "a"}, "spec": {"volume": {"size": "1Gi"}, "numberOfInstances": "two"}}, "numberOfInstances"),
        ({"metadata": {"name": "a"}, "spec": {"volume": {"size": "1Gi"}, "users": ["x"]}}, "spec.users"),
    ],
)
def test_parse_cluster_rejects_malformed(document, message):
    with pytest.raises(ConfigurationError, match=message):
        parse_cluster(document)


def test_init_users_adds_system_users_and_passwords():
    config = OperatorConfig(docker_image="spilo", super_username="postgres", replication_username="standby")
    counter = iter(range(100))
    spec = init_users(parse_cluster(SAMPLE_CLUSTER), config, password_factory=lambda: f"pw{next(counter)}")

    assert spec.users["postgres"].password
    assert spec.users["postgres"].flags == ["superuser"]
    assert spec.users["standby"].flags == ["replication"]
    assert spec.users["foo_user"].password.startswith("pw")
    assert spec.users["app"].password == "fixed"
    assert spec.users["jdoe"].password == ""


def test_init_users_does_not_mutate_input():
    config = OperatorConfig(docker_image="spilo")
    original = parse_cluster(SAMPLE_CLUSTER)
    init_users(original, config)

    assert "postgres" not in original.users
    assert original.users["foo_user"].password == ""


def test_init_users_rejects_system_user_collision():
    document = {
        "metadata": {"name": "acid-test"},
        "spec": {"volume": {"size": "1Gi"}, "users": {"postgres": []}},
    }
    with pytest.raises(ConfigurationError, match="system user"):
        init_users(parse_cluster(document), OperatorConfig(docker_image="spilo"))


def test_parse_cluster_rejects_unquoted_float_version():
    document = {
        "metadata": {"name": "acid-test"},
        "spec": {"postgresql": {"version": 9.10}, "volume": {"size": "1Gi"}},
    }
    with pytest.raises(ConfigurationError, match="quoted string"):
        parse_cluster(document)


def test_parse_cluster_accepts_integer_version():
    document = {
        "metadata": {"name": "acid-test"},
        "spec": {"postgresql": {"version": 12}, "volume": {"size": "1Gi"}},
    }
    assert parse_cluster(document).postgres_version == "12"


@pytest.mark.parametrize("username", ["a/b", "../etc", "Foo", "-lead", "trail_"])
def test_parse_cluster_rejects_invalid_user_names(username):
    document = {
        "metadata": {"name": "acid-test"},
        "spec": {"volume": {"size": "1Gi"}, "users": {username: []}},
    }
    with pytest.raises(ConfigurationError, match="Invalid user name"):
        parse_cluster(document)


def test_parse_cluster_rejects_invalid_human_user_names():
    document = {
        "metadata": {"name": "acid-test"},
        "spec": {"volume": {"size": "1Gi"}, "humanUsers": ["j/doe"]},
    }
    with pytest.raises(ConfigurationError, match="Invalid user name"):
        parse_cluster(document)
