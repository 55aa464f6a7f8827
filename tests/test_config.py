import pytest

from pgmanifest.config import build_operator_config, load_operator_config, require
from pgmanifest.errors import ConfigurationError


def test_load_operator_config_reads_yaml(tmp_path):
    config_file = tmp_path / "operator.yaml"
    config_file.write_text(
        "docker_image: registry.example.com/acid/spilo-12:1.6-p3\n"
        "etcd_host: etcd:2379\n"
        "pam_role_name: humans\n"
        "allowed_source_ranges:\n"
        "  - 10.0.0.0/8\n",
        encoding="utf-8",
    )

    config = load_operator_config(config_file, environ={})

    assert config.docker_image == "registry.example.com/acid/spilo-12:1.6-p3"
    assert config.etcd_host == "etcd:2379"
    assert config.pam_role_name == "humans"
    assert config.allowed_source_ranges == ("10.0.0.0/8",)
    assert config.super_username == "postgres"


def test_environment_overrides_file(tmp_path):
    config_file = tmp_path / "operator.yaml"
    config_file.write_text("docker_image: spilo:old\n", encoding="utf-8")

    config = load_operator_config(
        config_file,
        environ={
            "PGMANIFEST_DOCKER_IMAGE": "spilo:new",
            "PGMANIFEST_ALLOWED_SOURCE_RANGES": "10.0.0.0/8, 192.168.0.0/16",
        },
    )

    assert config.docker_image == "spilo:new"
    assert config.allowed_source_ranges == ("10.0.0.0/8", "192.168.0.0/16")


def test_rejects_unknown_keys():
    with pytest.raises(ConfigurationError, match="Unknown configuration keys"):
        build_operator_config({"docker_image": "spilo", "unknown_key": True}, environ={})


def test_rejects_missing_file(tmp_path):
    with pytest.raises(ConfigurationError, match="not found"):
        load_operator_config(tmp_path / "missing.yaml", environ={})


def test_rejects_non_mapping(tmp_path):
    config_file = tmp_path / "operator.yaml"
    config_file.write_text("- docker_image\n", encoding="utf-8")
    with pytest.raises(ConfigurationError, match="mapping"):
        load_operator_config(config_file, environ={})


def test_no_file_yields_defaults_without_image():
    config = load_operator_config(None, environ={})
    assert config.docker_image == ""
    with pytest.raises(ConfigurationError, match="docker_image"):
        require(config, "docker_image")
