"""
Tests for configuration loading and precedence.
"""

import os

import pytest

from libresolver.libresolver_config import ResolverConfig, load_config, write_example_config
from libresolver.libresolver_exceptions import ConfigError
from libresolver.libresolver_settings import LibresolverSettings


@pytest.fixture
def toml_file(tmp_path):
    path = tmp_path / "libresolver.toml"
    path.write_text(
        "\n".join(
            [
                "[resolver]",
                'version = "v1.0.0"',
                'install_dir = "/from/file"',
                "max_retries = 5",
                'token = "file-token"',
            ]
        )
    )
    return str(path)


class TestResolverConfig:
    """Tests for ResolverConfig."""

    def test_defaults(self, tmp_path, monkeypatch):
        monkeypatch.setenv("LIBRESOLVER_HOME", str(tmp_path))

        config = ResolverConfig()

        assert config.version == "latest"
        assert config.wants_latest
        assert config.may_install
        assert config.max_retries == 3
        assert config.timeout == 30.0
        assert config.cache_max_age == 7 * 24 * 60 * 60
        assert config.install_dir == os.path.join(str(tmp_path), "lib")
        assert config.cache_dir == os.path.join(str(tmp_path), "lib", "cache")
        assert config.library_names
        assert config.asset_patterns

    def test_skip_install_disables_install(self):
        assert not ResolverConfig(install_dir="/x", skip_install=True).may_install
        assert not ResolverConfig(install_dir="/x", auto_install=False).may_install

    def test_invalid_values(self):
        with pytest.raises(ConfigError):
            ResolverConfig(install_dir="/x", max_retries=-1)
        with pytest.raises(ConfigError):
            ResolverConfig(install_dir="/x", timeout=0)

    def test_from_dict_rejects_unknown_keys(self):
        with pytest.raises(ConfigError) as exc_info:
            ResolverConfig.from_dict({"install_dir": "/x", "retries": 2})

        assert "retries" in str(exc_info.value)

    def test_from_toml(self, toml_file):
        config = ResolverConfig.from_toml(toml_file)

        assert config.version == "v1.0.0"
        assert config.install_dir == "/from/file"
        assert config.cache_dir == os.path.join("/from/file", "cache")
        assert config.max_retries == 5

    def test_unreadable_toml(self, tmp_path):
        path = tmp_path / "broken.toml"
        path.write_text("[resolver\nversion = ")

        with pytest.raises(ConfigError):
            ResolverConfig.from_toml(str(path))

    def test_install_dir_override_moves_cache_dir(self):
        config = ResolverConfig(install_dir="/a").merged(install_dir="/b")

        assert config.cache_dir == os.path.join("/b", "cache")

    def test_install_dir_override_keeps_explicit_cache_dir(self):
        config = ResolverConfig(install_dir="/a", cache_dir="/var/cache/libresolver").merged(install_dir="/b")

        assert config.install_dir == "/b"
        assert config.cache_dir == "/var/cache/libresolver"

    def test_library_base_name_override_rederives_names(self):
        config = ResolverConfig(install_dir="/a").merged(library_base_name="sqlite3")

        assert all("sqlite3" in name for name in config.library_names)
        assert any("sqlite3" in pattern for pattern in config.asset_patterns)

    def test_merged_ignores_none(self):
        config = ResolverConfig(install_dir="/a", version="v1.0.0")

        assert config.merged(version=None, token=None) is config


class TestPrecedence:
    """Defaults < TOML file < environment < explicit options."""

    def test_file_overrides_defaults(self, toml_file):
        assert load_config(toml_file, environ={}).version == "v1.0.0"

    def test_environment_overrides_file(self, toml_file):
        environ = {"LIBRESOLVER_VERSION": "v1.1.0", "LIBRESOLVER_INSTALL_DIR": "/from/env"}

        config = load_config(toml_file, environ=environ)

        assert config.version == "v1.1.0"
        assert config.install_dir == "/from/env"
        assert config.max_retries == 5

    def test_explicit_options_override_environment(self, toml_file):
        config = load_config(toml_file, environ={"LIBRESOLVER_VERSION": "v1.1.0"}, version="v1.1.3", force=True)

        assert config.version == "v1.1.3"
        assert config.force

    def test_environment_install_dir_keeps_file_cache_dir(self, tmp_path):
        path = tmp_path / "libresolver.toml"
        path.write_text('[resolver]\ninstall_dir = "/from/file"\ncache_dir = "/shared/cache"\n')

        config = load_config(str(path), environ={"LIBRESOLVER_INSTALL_DIR": "/from/env"})

        assert config.install_dir == "/from/env"
        assert config.cache_dir == "/shared/cache"

    def test_token_from_environment_does_not_replace_file_token(self, toml_file):
        assert load_config(toml_file, environ={"GITHUB_TOKEN": "env-token"}).token == "file-token"

    def test_token_from_environment(self, tmp_path, monkeypatch):
        monkeypatch.setenv("LIBRESOLVER_HOME", str(tmp_path))

        assert load_config(environ={"GH_TOKEN": "gh"}).token == "gh"
        assert load_config(environ={"GITHUB_TOKEN": "a", "GH_TOKEN": "b"}).token == "a"

    def test_no_progress_from_environment(self, tmp_path, monkeypatch):
        monkeypatch.setenv("LIBRESOLVER_HOME", str(tmp_path))

        assert load_config(environ={"LIBRESOLVER_NO_PROGRESS": "1"}).no_progress
        assert not load_config(environ={"LIBRESOLVER_NO_PROGRESS": "0"}).no_progress

    def test_default_config_file_is_read(self, tmp_path, monkeypatch):
        monkeypatch.setenv("LIBRESOLVER_HOME", str(tmp_path))
        with open(LibresolverSettings.get_config_file(), "w") as f:
            f.write('[resolver]\nversion = "v0.10.3"\n')

        assert load_config(environ={}).version == "v0.10.3"


class TestExampleConfig:
    """Tests for write_example_config."""

    def test_written_file_loads(self, tmp_path):
        path = write_example_config(str(tmp_path / "conf" / "libresolver.toml"))

        config = load_config(path, environ={})
        assert config.owner == "duckdb"
        assert config.version == "latest"
        assert config.version_symbol == "duckdb_library_version"

    def test_default_location(self, tmp_path, monkeypatch):
        monkeypatch.setenv("LIBRESOLVER_HOME", str(tmp_path))

        assert write_example_config() == LibresolverSettings.get_config_file()
        assert os.path.isfile(LibresolverSettings.get_config_file())

    def test_existing_file_is_kept(self, toml_file):
        with pytest.raises(ConfigError):
            write_example_config(toml_file)

        assert load_config(toml_file, environ={}).version == "v1.0.0"

    def test_overwrite(self, toml_file):
        write_example_config(toml_file, overwrite=True)

        assert load_config(toml_file, environ={}).version == "latest"
