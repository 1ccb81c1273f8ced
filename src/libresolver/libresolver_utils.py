"""
This file contains various utility functions like platform detection and file helpers.
"""

import os
import platform
import shutil
import tempfile
from enum import Enum
from typing import List, Optional


class PlatformId(str, Enum):
    """
    Platform identifiers of the form "<os>-<arch>"
    """

    WIN_x64 = "win-x64"
    WIN_arm64 = "win-arm64"
    OSX_x64 = "osx-x64"
    OSX_arm64 = "osx-arm64"
    LINUX_x64 = "linux-x64"
    LINUX_arm64 = "linux-arm64"

    def is_windows(self) -> bool:
        return self.value.startswith("win")

    def is_osx(self) -> bool:
        return self.value.startswith("osx")


# Platform fragment used in upstream release asset names, e.g. libduckdb-linux-amd64.zip
ASSET_PLATFORM_TOKENS = {
    PlatformId.WIN_x64: ["windows-amd64", "win-x64", "win64"],
    PlatformId.WIN_arm64: ["windows-arm64", "win-arm64"],
    PlatformId.OSX_x64: ["osx-universal", "osx-amd64", "osx-x64", "macos"],
    PlatformId.OSX_arm64: ["osx-universal", "osx-arm64", "macos"],
    PlatformId.LINUX_x64: ["linux-amd64", "linux-x64", "linux-x86_64"],
    PlatformId.LINUX_arm64: ["linux-arm64", "linux-aarch64"],
}

ARCHIVE_EXTENSIONS = (".tar.gz", ".tgz", ".zip", ".nupkg")


class PlatformUtils:
    """
    This class provides utilities for platform detection and identification.
    """

    @staticmethod
    def get_platform_id() -> PlatformId:
        """
        Returns the platform id for the current system
        """
        system = platform.system()
        machine = platform.machine().lower()
        arm = machine in ("arm64", "aarch64", "armv8", "armv8l")

        if system == "Windows":
            return PlatformId.WIN_arm64 if arm else PlatformId.WIN_x64
        if system == "Darwin":
            return PlatformId.OSX_arm64 if arm else PlatformId.OSX_x64
        if system == "Linux":
            return PlatformId.LINUX_arm64 if arm else PlatformId.LINUX_x64
        raise NotImplementedError(f"Unsupported platform: {system} {machine}")

    @staticmethod
    def library_file_names(base_name: str, platform_id: Optional[PlatformId] = None) -> List[str]:
        """
        File names a shared library called `base_name` may carry on the platform, most preferred first.
        """
        platform_id = platform_id or PlatformUtils.get_platform_id()
        if platform_id.is_windows():
            return [f"{base_name}.dll", f"lib{base_name}.dll"]
        if platform_id.is_osx():
            return [f"lib{base_name}.dylib", f"{base_name}.dylib"]
        return [f"lib{base_name}.so", f"{base_name}.so"]

    @staticmethod
    def well_known_library_dirs(platform_id: Optional[PlatformId] = None) -> List[str]:
        """
        System directories where shared libraries are conventionally installed.
        """
        platform_id = platform_id or PlatformUtils.get_platform_id()
        if platform_id.is_windows():
            dirs = []
            for var in ("ProgramFiles", "ProgramFiles(x86)", "ProgramW6432"):
                value = os.environ.get(var)
                if value:
                    dirs.append(value)
            system_root = os.environ.get("SystemRoot")
            if system_root:
                dirs.append(os.path.join(system_root, "System32"))
            return dirs
        if platform_id.is_osx():
            return ["/opt/homebrew/lib", "/usr/local/lib", "/usr/lib"]
        multiarch = "aarch64-linux-gnu" if platform_id == PlatformId.LINUX_arm64 else "x86_64-linux-gnu"
        return [
            "/usr/local/lib",
            f"/usr/lib/{multiarch}",
            "/usr/lib64",
            "/usr/lib",
        ]

    @staticmethod
    def path_entries() -> List[str]:
        """
        Non-empty entries of the PATH environment variable, in order.
        """
        return [entry for entry in os.environ.get("PATH", "").split(os.pathsep) if entry]

    @staticmethod
    def default_asset_patterns(base_name: str, platform_id: Optional[PlatformId] = None) -> List[str]:
        """
        Asset name patterns, most preferred first: platform binary archives, then
        generic archives, then source archives.
        """
        platform_id = platform_id or PlatformUtils.get_platform_id()
        patterns = []
        for token in ASSET_PLATFORM_TOKENS[platform_id]:
            patterns.append(f"lib{base_name}-{token}.zip")
            patterns.append(f"*{base_name}*{token}*.zip")
            patterns.append(f"*{base_name}*{token}*.tar.gz")
            patterns.append(f"*{base_name}*{token}*.tgz")
        patterns.extend(["*.nupkg", "*.zip", "*.tar.gz", "*.tgz"])
        patterns.extend(["*src*", "*source*"])
        return patterns


class FileUtils:
    """
    Utility functions for file operations.
    """

    @staticmethod
    def archive_extension(file_name: str) -> str:
        """
        The archive extension of `file_name`, lower-cased, or "" if it is not a known archive.
        """
        lowered = file_name.lower()
        for extension in ARCHIVE_EXTENSIONS:
            if lowered.endswith(extension):
                return extension
        return ""

    @staticmethod
    def atomic_copy(source: str, destination: str) -> None:
        """
        Copy `source` to `destination` via a temp file in the destination directory
        so readers never observe a half-written file.
        """
        dest_dir = os.path.dirname(os.path.abspath(destination))
        os.makedirs(dest_dir, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(suffix=".tmp", dir=dest_dir)
        os.close(fd)
        try:
            shutil.copy2(source, tmp_path)
            os.replace(tmp_path, destination)
        except BaseException:
            if os.path.exists(tmp_path):
                os.unlink(tmp_path)
            raise

    @staticmethod
    def atomic_write_text(path: str, text: str) -> None:
        dest_dir = os.path.dirname(os.path.abspath(path))
        os.makedirs(dest_dir, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(suffix=".tmp", dir=dest_dir)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(text)
            os.replace(tmp_path, path)
        except BaseException:
            if os.path.exists(tmp_path):
                os.unlink(tmp_path)
            raise
