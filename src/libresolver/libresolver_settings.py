"""
Default filesystem locations used by libresolver.
"""

import os
import pathlib
from typing import Optional


class LibresolverSettings:
    """
    Provides the default install and cache directories.
    """

    @staticmethod
    def get_base_directory() -> str:
        """
        Root directory for everything libresolver writes, overridable with LIBRESOLVER_HOME
        """
        home = os.environ.get("LIBRESOLVER_HOME", "").strip()
        if home:
            return str(pathlib.Path(home).expanduser())
        return str(pathlib.Path(os.path.expanduser("~"), ".libresolver"))

    @staticmethod
    def get_install_directory() -> str:
        return str(pathlib.Path(LibresolverSettings.get_base_directory(), "lib"))

    @staticmethod
    def get_cache_directory(install_dir: Optional[str] = None) -> str:
        """
        Downloads are cached next to the install directory they feed.
        """
        if install_dir:
            return str(pathlib.Path(install_dir, "cache"))
        return str(pathlib.Path(LibresolverSettings.get_base_directory(), "cache"))

    @staticmethod
    def get_config_file() -> str:
        return str(pathlib.Path(LibresolverSettings.get_base_directory(), "libresolver.toml"))
