"""
Configuration parameters for libresolver.

Precedence, lowest first: built-in defaults, the `[resolver]` table of a
libresolver.toml file, LIBRESOLVER_* / GITHUB_TOKEN environment variables,
and finally options passed explicitly by the caller.
"""

import dataclasses
import os
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

try:
    import tomllib
except ModuleNotFoundError:
    # Python < 3.11
    import tomli as tomllib

from libresolver.libresolver_exceptions import ConfigError
from libresolver.libresolver_settings import LibresolverSettings
from libresolver.libresolver_utils import FileUtils, PlatformUtils

DEFAULT_MAX_AGE_SECONDS = 7 * 24 * 60 * 60

LIBRESOLVER_TOML_EXAMPLE = """
# libresolver configuration

[resolver]
# Release host repository the library is published from
owner = "duckdb"
repo = "duckdb"

# Release tag to install, or "latest"
version = "latest"

# Base name of the shared library (libduckdb.so, libduckdb.dylib, duckdb.dll)
library_base_name = "duckdb"

# Exported function returning the library version as a C string
version_symbol = "duckdb_library_version"

# install_dir = "/opt/reports/lib"
# library_path = "/opt/duckdb/libduckdb.so"
# incompatible_major = 2
"""

_ENV_OVERRIDES = {
    "LIBRESOLVER_LIBRARY_PATH": "library_path",
    "LIBRESOLVER_INSTALL_DIR": "install_dir",
    "LIBRESOLVER_CACHE_DIR": "cache_dir",
    "LIBRESOLVER_VERSION": "version",
}

_TRUE = ("1", "true", "yes", "on")


@dataclass
class ResolverConfig:
    """
    Configuration parameters
    """

    owner: str = "duckdb"
    repo: str = "duckdb"
    version: str = "latest"
    library_base_name: str = "duckdb"
    library_path: Optional[str] = None
    install_dir: Optional[str] = None
    cache_dir: Optional[str] = None
    script_dir: Optional[str] = None
    db_path: Optional[str] = None
    force: bool = False
    skip_install: bool = False
    auto_install: bool = True
    token: Optional[str] = None
    no_progress: bool = False
    timeout: float = 30.0
    max_retries: int = 3
    retry_base_delay: float = 1.0
    cache_max_age: float = DEFAULT_MAX_AGE_SECONDS
    min_library_size: int = 1024
    incompatible_major: Optional[int] = 2
    library_names: List[str] = field(default_factory=list)
    asset_patterns: List[str] = field(default_factory=list)
    version_symbol: Optional[str] = "duckdb_library_version"
    api_base_url: str = "https://api.github.com"
    user_agent: str = "libresolver"
    api_version: str = "2022-11-28"

    def __post_init__(self) -> None:
        if not self.library_names:
            self.library_names = PlatformUtils.library_file_names(self.library_base_name)
        if not self.asset_patterns:
            self.asset_patterns = PlatformUtils.default_asset_patterns(self.library_base_name)
        if not self.install_dir:
            self.install_dir = LibresolverSettings.get_install_directory()
        if not self.cache_dir:
            self.cache_dir = LibresolverSettings.get_cache_directory(self.install_dir)
        if not self.version:
            self.version = "latest"
        if self.max_retries < 0:
            raise ConfigError(f"max_retries must be >= 0, got {self.max_retries}")
        if self.timeout <= 0:
            raise ConfigError(f"timeout must be positive, got {self.timeout}")

    @property
    def wants_latest(self) -> bool:
        return self.version.strip().lower() == "latest"

    @property
    def may_install(self) -> bool:
        return self.auto_install and not self.skip_install

    @classmethod
    def from_dict(cls, env: Dict[str, Any]) -> "ResolverConfig":
        """
        Create a ResolverConfig instance from a dictionary
        """
        known = {f.name for f in dataclasses.fields(cls)}
        unknown = sorted(set(env) - known)
        if unknown:
            raise ConfigError(f"Unknown configuration keys: {', '.join(unknown)}")
        try:
            return cls(**env)
        except TypeError as e:
            raise ConfigError("Invalid configuration", cause=e) from e

    @classmethod
    def from_toml(cls, path: str, **overrides: Any) -> "ResolverConfig":
        """
        Load the `[resolver]` table of a TOML file, then apply `overrides`.

        Raises:
            ConfigError: If the file cannot be read or parsed
        """
        try:
            with open(path, "rb") as f:
                data = tomllib.load(f)
        except (OSError, tomllib.TOMLDecodeError) as e:
            raise ConfigError(f"Cannot load config file {path}", cause=e) from e

        section = data.get("resolver", {})
        if not isinstance(section, dict):
            raise ConfigError(f"[resolver] in {path} must be a table")
        section.update({k: v for k, v in overrides.items() if v is not None})
        return cls.from_dict(section)

    def with_env(self, environ: Optional[Dict[str, str]] = None) -> "ResolverConfig":
        """
        Return a copy with environment variable overrides applied.
        """
        environ = os.environ if environ is None else environ
        changes: Dict[str, Any] = {}
        for var, attr in _ENV_OVERRIDES.items():
            value = environ.get(var, "").strip()
            if value:
                changes[attr] = value

        token = environ.get("GITHUB_TOKEN", "").strip() or environ.get("GH_TOKEN", "").strip()
        if token and not self.token:
            changes["token"] = token

        if environ.get("LIBRESOLVER_NO_PROGRESS", "").strip().lower() in _TRUE:
            changes["no_progress"] = True

        return self._replace(changes)

    def merged(self, **overrides: Any) -> "ResolverConfig":
        """
        Return a copy with every non-None override applied.
        """
        return self._replace({k: v for k, v in overrides.items() if v is not None})

    def _replace(self, changes: Dict[str, Any]) -> "ResolverConfig":
        if not changes:
            return self
        # derived values follow the field they were derived from
        derived_cache_dir = LibresolverSettings.get_cache_directory(self.install_dir)
        if "install_dir" in changes and "cache_dir" not in changes and self.cache_dir == derived_cache_dir:
            changes["cache_dir"] = LibresolverSettings.get_cache_directory(changes["install_dir"])
        if "library_base_name" in changes:
            changes.setdefault("library_names", [])
            changes.setdefault("asset_patterns", [])
        return dataclasses.replace(self, **changes)


def load_config(path: Optional[str] = None, environ: Optional[Dict[str, str]] = None, **overrides: Any) -> ResolverConfig:
    """
    Build the effective configuration: file (explicit path, or the default
    location when it exists), then environment, then `overrides`.
    """
    if path is None:
        default_path = LibresolverSettings.get_config_file()
        path = default_path if os.path.isfile(default_path) else None

    config = ResolverConfig.from_toml(path) if path else ResolverConfig()
    return config.with_env(environ).merged(**overrides)


def write_example_config(path: Optional[str] = None, overwrite: bool = False) -> str:
    """
    Write a commented starter libresolver.toml to `path`, the default config
    file location when not given.

    Returns:
        The path written

    Raises:
        ConfigError: If the file exists and `overwrite` is False, or cannot be written
    """
    path = path or LibresolverSettings.get_config_file()
    if os.path.exists(path) and not overwrite:
        raise ConfigError(f"{path} already exists", action="writing an example config file")
    try:
        FileUtils.atomic_write_text(path, LIBRESOLVER_TOML_EXAMPLE.lstrip())
    except OSError as e:
        raise ConfigError(f"Cannot write {path}", action="writing an example config file", cause=e) from e
    return path
