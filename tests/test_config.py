"""
Configuration and Environment Tests
"""

import pytest

from oracle_gas_tools.config import Settings, resolve_environment
from oracle_gas_tools.errors import ConfigurationError


def make_settings(**values) -> Settings:
    base = {
        "TENDERLY_USER": "alice",
        "TENDERLY_PROJECT": "oval",
        "TENDERLY_ACCESS_KEY": "secret-key",
    }
    base.update(values)
    return Settings(_env_file=None, **base)


class TestResolveEnvironment:
    """Tenderly environment resolution"""

    def test_resolves_all_values(self):
        env = resolve_environment(make_settings())
        assert env.user == "alice"
        assert env.project == "oval"
        assert env.api_key == "secret-key"

    @pytest.mark.parametrize(
        "name", ["TENDERLY_USER", "TENDERLY_PROJECT", "TENDERLY_ACCESS_KEY"]
    )
    def test_empty_value_fails(self, name):
        with pytest.raises(ConfigurationError, match=name):
            resolve_environment(make_settings(**{name: ""}))

    def test_reads_process_environment(self, monkeypatch):
        monkeypatch.setenv("TENDERLY_USER", "bob")
        monkeypatch.setenv("TENDERLY_PROJECT", "gas")
        monkeypatch.setenv("TENDERLY_ACCESS_KEY", "k")
        env = resolve_environment(Settings(_env_file=None))
        assert (env.user, env.project, env.api_key) == ("bob", "gas", "k")

    def test_unset_value_fails(self, monkeypatch):
        monkeypatch.delenv("TENDERLY_USER", raising=False)
        monkeypatch.setenv("TENDERLY_PROJECT", "gas")
        monkeypatch.setenv("TENDERLY_ACCESS_KEY", "k")
        with pytest.raises(ConfigurationError, match="TENDERLY_USER not set"):
            resolve_environment(Settings(_env_file=None))

    def test_environment_is_immutable(self):
        env = resolve_environment(make_settings())
        with pytest.raises(Exception):
            env.user = "mallory"


class TestSettings:
    """Settings defaults"""

    def test_http_timeout_zero_disables(self):
        assert make_settings(TENDERLY_HTTP_TIMEOUT=0).http_timeout is None
        assert make_settings().http_timeout == 30.0
