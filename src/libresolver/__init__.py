"""
libresolver locates, installs and loads a native shared library published as
a GitHub release asset.

Typical use:

    from libresolver import LibraryResolver, load_config

    resolver = LibraryResolver(load_config())
    library = resolver.ensure_installed()
    handle = library.handle
"""

from libresolver.libresolver_config import ResolverConfig, load_config
from libresolver.libresolver_exceptions import (
    ConfigError,
    DownloadFailed,
    ExtractFailed,
    InstallFailed,
    InvalidReleasePayload,
    LibresolverException,
    NetworkError,
    NoMatchingAsset,
    NotFound,
    ReleaseNotFound,
    UnsupportedFormat,
)
from libresolver.libresolver_logger import LibresolverLogger
from libresolver.resolver import LibraryResolver, default_resolver, ensure_installed
from libresolver.runtime_dependency_models import LoadedLibrary

__version__ = "0.1.0"

__all__ = [
    "ConfigError",
    "DownloadFailed",
    "ExtractFailed",
    "InstallFailed",
    "InvalidReleasePayload",
    "LibraryResolver",
    "LibresolverException",
    "LibresolverLogger",
    "LoadedLibrary",
    "NetworkError",
    "NoMatchingAsset",
    "NotFound",
    "ReleaseNotFound",
    "ResolverConfig",
    "UnsupportedFormat",
    "default_resolver",
    "ensure_installed",
    "load_config",
]
