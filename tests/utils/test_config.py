"""Tests for discovery configuration loading."""

import tempfile
from pathlib import Path

import pytest
import yaml

from crm_discovery.errors import ConfigError
from crm_discovery.utils.config import DiscoveryConfig, apply_env_overrides, load_config


@pytest.fixture
def temp_config_dir():
    """Create temporary directory for config files."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


def _write(path: Path, content) -> Path:
    with path.open("w") as f:
        yaml.dump(content, f)
    return path


def _valid(**overrides) -> DiscoveryConfig:
    values = {"api_base_url": "http://localhost:3000", "api_key": "key"}
    values.update(overrides)
    return DiscoveryConfig(**values)


class TestLoadConfig:
    """Test YAML loading."""

    def test_defaults_without_file(self) -> None:
        config = load_config(environ={})

        assert config == DiscoveryConfig()
        assert config.test_iterations == 5
        assert config.max_concurrent_requests == 10
        assert config.request_timeout_seconds == 10.0

    def test_missing_file_uses_defaults(self, temp_config_dir: Path) -> None:
        config = load_config(temp_config_dir / "missing.yaml", environ={})
        assert config == DiscoveryConfig()

    def test_discovery_section(self, temp_config_dir: Path) -> None:
        path = _write(
            temp_config_dir / "discovery.yaml",
            {
                "discovery": {
                    "api_base_url": "http://crm.local:3000/",
                    "test_iterations": 10,
                    "rate_limit_budget_seconds": 5,
                    "markdown_report": False,
                },
            },
        )

        config = load_config(path, environ={})

        assert config.base_url == "http://crm.local:3000"
        assert config.test_iterations == 10
        assert config.rate_limit_budget_seconds == 5
        assert config.markdown_report is False

    def test_flat_mapping(self, temp_config_dir: Path) -> None:
        path = _write(temp_config_dir / "flat.yaml", {"output_dir": "out"})
        assert load_config(path, environ={}).output_dir == "out"

    def test_unknown_keys_ignored(self, temp_config_dir: Path) -> None:
        path = _write(temp_config_dir / "extra.yaml", {"discovery": {"colour": "blue", "test_iterations": 2}})

        config = load_config(path, environ={})

        assert config.test_iterations == 2
        assert not hasattr(config, "colour")

    def test_invalid_yaml(self, temp_config_dir: Path) -> None:
        path = temp_config_dir / "broken.yaml"
        path.write_text("discovery: [unclosed\n")

        with pytest.raises(ConfigError):
            load_config(path, environ={})

    def test_non_mapping(self, temp_config_dir: Path) -> None:
        path = _write(temp_config_dir / "list.yaml", ["a", "b"])

        with pytest.raises(ConfigError, match="mapping"):
            load_config(path, environ={})


class TestEnvOverrides:
    """Test environment variable overrides."""

    def test_overrides(self) -> None:
        environ = {
            "TWENTY_API_URL": "https://crm.example.com",
            "TWENTY_API_KEY": "secret",
            "MAX_CONCURRENT_REQUESTS": "4",
            "REQUEST_TIMEOUT_MS": "2500",
            "TEST_ITERATIONS": "7",
            "LOG_LEVEL": "debug",
        }

        config = apply_env_overrides(DiscoveryConfig(), environ)

        assert config.api_base_url == "https://crm.example.com"
        assert config.api_key == "secret"
        assert config.max_concurrent_requests == 4
        assert config.request_timeout_seconds == 2.5
        assert config.test_iterations == 7
        assert config.log_level == "debug"

    def test_env_wins_over_file(self, temp_config_dir: Path) -> None:
        path = _write(temp_config_dir / "iter.yaml", {"discovery": {"test_iterations": 3}})
        assert load_config(path, environ={"TEST_ITERATIONS": "9"}).test_iterations == 9

    def test_empty_values_ignored(self) -> None:
        config = apply_env_overrides(DiscoveryConfig(), {"TEST_ITERATIONS": ""})
        assert config.test_iterations == 5

    def test_invalid_number(self) -> None:
        with pytest.raises(ConfigError, match="TEST_ITERATIONS"):
            apply_env_overrides(DiscoveryConfig(), {"TEST_ITERATIONS": "many"})


class TestValidate:
    """Test configuration validation."""

    def test_valid(self) -> None:
        config = _valid()
        assert config.validate() is config

    def test_auth_headers(self) -> None:
        assert _valid(api_key="abc").auth_headers["Authorization"] == "Bearer abc"

    @pytest.mark.parametrize(
        "overrides",
        [
            {"api_base_url": ""},
            {"api_base_url": "localhost:3000"},
            {"api_base_url": "ftp://crm"},
            {"api_key": ""},
            {"max_concurrent_requests": 0},
            {"test_iterations": -1},
            {"request_timeout_seconds": 0},
            {"rate_limit_budget_seconds": 0},
            {"rate_limit_delay_seconds": -0.1},
            {"log_level": "verbose"},
        ],
    )
    def test_invalid(self, overrides: dict) -> None:
        with pytest.raises(ConfigError):
            _valid(**overrides).validate()

    def test_zero_iterations_allowed(self) -> None:
        assert _valid(test_iterations=0).validate().test_iterations == 0
