"""
Loading and installing the native library.
"""

from .installer import InstallVerifier
from .probe import VERSION_MARKER, LibraryProbe, exported_version_reader

__all__ = ["InstallVerifier", "LibraryProbe", "VERSION_MARKER", "exported_version_reader"]
