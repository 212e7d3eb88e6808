"""Tests for run configuration and deployment settings."""

from pathlib import Path

import pytest
from pydantic import ValidationError

from qbdeploy.lib.config import (
    DeployConfig,
    Environment,
    RunConfig,
    WorkloadConfig,
    find_config_file,
    load_deploy_config,
    load_deploy_yaml,
)
from qbdeploy.lib.errors import ConfigurationError


class TestRunConfig:
    @pytest.mark.parametrize("name", ["development", "staging", "production"])
    def test_known_environments(self, name):
        run = RunConfig.from_cli(name)
        assert run.environment.value == name

    @pytest.mark.parametrize("name", ["prod", "dev", "", "Production"])
    def test_unknown_environment_raises(self, name):
        with pytest.raises(ConfigurationError) as exc:
            RunConfig.from_cli(name)
        assert exc.value.exit_code == 2
        assert "Must be one of: development, staging, production" in exc.value.message

    def test_defaults(self):
        run = RunConfig()
        assert run.environment == Environment.DEVELOPMENT
        assert not run.skip_build
        assert not run.skip_deploy
        assert not run.force

    def test_is_immutable(self):
        run = RunConfig.from_cli("staging", force=True)
        with pytest.raises(ValidationError):
            run.force = False


class TestDeployConfigDefaults:
    def test_matches_quiz_builder_stack(self):
        config = DeployConfig()
        assert config.namespace == "quiz-builder"
        assert config.required_tools == ["ansible", "docker", "kubectl", "helm"]
        assert config.readiness_timeout == 300
        assert config.log_file == Path("deployment.log")
        assert [w.deployment for w in config.workloads] == [
            "quiz-builder-backend",
            "quiz-builder-frontend",
        ]
        assert config.probe.mode == "in-cluster"

    def test_health_url(self):
        workload = WorkloadConfig(
            deployment="b", service="b-svc", port=8080, health_path="actuator/health"
        )
        assert workload.health_url("10.0.0.5") == "http://10.0.0.5:8080/actuator/health"

    def test_rejects_unknown_keys(self):
        with pytest.raises(ValidationError):
            DeployConfig(namspace="typo")


class TestLoadDeployYaml:
    def test_load_overrides_defaults(self, tmp_path):
        path = tmp_path / "qbdeploy.yaml"
        path.write_text(
            "name: Quiz Builder Staging\n"
            "namespace: qb\n"
            "readiness_timeout: 60\n"
            "probe:\n"
            "  mode: direct\n"
        )

        config = load_deploy_yaml(path)
        assert config.name == "Quiz Builder Staging"
        assert config.namespace == "qb"
        assert config.readiness_timeout == 60
        assert config.probe.mode == "direct"
        assert config.probe.image == "curlimages/curl"

    def test_relative_ansible_dir_resolved_against_file(self, tmp_path):
        path = tmp_path / "deploy" / "qbdeploy.yaml"
        path.parent.mkdir()
        path.write_text("ansible_dir: playbooks\n")

        config = load_deploy_yaml(path)
        assert config.ansible_dir == path.parent.resolve() / "playbooks"

    def test_overlay_ansible_dir_resolved_against_file(self, tmp_path):
        path = tmp_path / "deploy" / "qbdeploy.yaml"
        path.parent.mkdir()
        path.write_text(
            "ansible_dir: ansible\n"
            "environments:\n"
            "  production:\n"
            "    ansible_dir: ansible-prod\n"
        )

        config = load_deploy_yaml(path)
        prod = config.for_environment(Environment.PRODUCTION)
        assert config.ansible_dir == path.parent.resolve() / "ansible"
        assert prod.ansible_dir == path.parent.resolve() / "ansible-prod"

    def test_absolute_overlay_ansible_dir_kept(self, tmp_path):
        path = tmp_path / "qbdeploy.yaml"
        elsewhere = tmp_path / "elsewhere"
        path.write_text(
            f"environments:\n  staging:\n    ansible_dir: {elsewhere}\n"
        )

        config = load_deploy_yaml(path).for_environment(Environment.STAGING)
        assert config.ansible_dir == elsewhere

    def test_empty_file_gives_defaults(self, tmp_path):
        path = tmp_path / "qbdeploy.yaml"
        path.write_text("")
        config = load_deploy_yaml(path)
        assert config.namespace == "quiz-builder"

    def test_missing_file_raises(self, tmp_path):
        with pytest.raises(ConfigurationError):
            load_deploy_yaml(tmp_path / "missing.yaml")

    def test_invalid_yaml_raises(self, tmp_path):
        path = tmp_path / "qbdeploy.yaml"
        path.write_text("name: [unclosed\n")
        with pytest.raises(ConfigurationError):
            load_deploy_yaml(path)

    def test_non_mapping_raises(self, tmp_path):
        path = tmp_path / "qbdeploy.yaml"
        path.write_text("- a\n- b\n")
        with pytest.raises(ConfigurationError):
            load_deploy_yaml(path)

    def test_invalid_value_raises(self, tmp_path):
        path = tmp_path / "qbdeploy.yaml"
        path.write_text("readiness_timeout: -5\n")
        with pytest.raises(ConfigurationError):
            load_deploy_yaml(path)

    def test_unknown_environment_overlay_raises(self, tmp_path):
        path = tmp_path / "qbdeploy.yaml"
        path.write_text("environments:\n  prod:\n    namespace: x\n")
        with pytest.raises(ConfigurationError):
            load_deploy_yaml(path)


class TestDiscovery:
    def test_find_in_parent(self, tmp_path):
        (tmp_path / "qbdeploy.yaml").write_text("namespace: found\n")
        nested = tmp_path / "a" / "b"
        nested.mkdir(parents=True)

        assert find_config_file(nested) == tmp_path.resolve() / "qbdeploy.yaml"
        assert load_deploy_config(start=nested).namespace == "found"

    def test_explicit_path_wins(self, tmp_path):
        (tmp_path / "qbdeploy.yaml").write_text("namespace: discovered\n")
        explicit = tmp_path / "other.yaml"
        explicit.write_text("namespace: explicit\n")

        config = load_deploy_config(path=explicit, start=tmp_path)
        assert config.namespace == "explicit"


class TestEnvironmentOverlay:
    def test_no_overlay_returns_same_settings(self):
        config = DeployConfig()
        assert config.for_environment(Environment.STAGING) is config

    def test_overlay_merges_nested_and_replaces_lists(self):
        config = DeployConfig(
            environments={
                Environment.PRODUCTION: {
                    "namespace": "quiz-builder-prod",
                    "probe": {"timeout": 30},
                    "workloads": [
                        {"deployment": "api", "service": "api-svc", "port": 8080}
                    ],
                }
            }
        )

        prod = config.for_environment(Environment.PRODUCTION)
        assert prod.namespace == "quiz-builder-prod"
        assert prod.probe.timeout == 30
        assert prod.probe.image == "curlimages/curl"
        assert [w.deployment for w in prod.workloads] == ["api"]

        dev = config.for_environment(Environment.DEVELOPMENT)
        assert dev.namespace == "quiz-builder"

    def test_overlay_from_yaml(self, tmp_path):
        path = tmp_path / "qbdeploy.yaml"
        path.write_text(
            "namespace: qb\n"
            "environments:\n"
            "  staging:\n"
            "    namespace: qb-staging\n"
            "    extra_vars:\n"
            "      replicas: 2\n"
        )
        staging = load_deploy_yaml(path).for_environment(Environment.STAGING)
        assert staging.namespace == "qb-staging"
        assert staging.extra_vars == {"replicas": 2}

    def test_invalid_overlay_raises(self):
        config = DeployConfig(
            environments={Environment.STAGING: {"readiness_timeout": "soon"}}
        )
        with pytest.raises(ConfigurationError):
            config.for_environment(Environment.STAGING)

    def test_nested_environments_rejected(self):
        config = DeployConfig(
            environments={Environment.STAGING: {"environments": {}}}
        )
        with pytest.raises(ConfigurationError):
            config.for_environment(Environment.STAGING)
