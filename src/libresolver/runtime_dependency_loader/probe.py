"""
Probing of candidate library files.

Loading a shared library is a one-shot, process-wide side effect: once a file
has been loaded it stays mapped until the process exits. The probe therefore
returns the loaded handle to its caller instead of discarding it.
"""

import ctypes
import logging
import os
import re
from typing import Any, Callable, Optional

from libresolver.libresolver_config import ResolverConfig
from libresolver.libresolver_logger import LibresolverLogger
from libresolver.runtime_dependency_models import (
    CandidateOrigin,
    FailureKind,
    ProbeResult,
    SemanticVersion,
)

VERSION_MARKER = "version.txt"

# Loader messages that mean "wrong architecture or not a library at all"
BAD_IMAGE_MARKERS = (
    "wrong elf class",
    "invalid elf header",
    "file too short",
    "not a valid win32 application",
    "incompatible architecture",
    "mach-o, but wrong architecture",
    "not a mach-o file",
    "elf load command",
    "cannot open shared object file: exec format error",
)
WIN_ERROR_BAD_EXE_FORMAT = 193

_FILENAME_VERSION_RE = re.compile(r"(?:\.so\.|[-_]v?)(\d+(?:\.\d+){0,2})(?=\.|$)")

Loader = Callable[[str], Any]
VersionReader = Callable[[Any], Optional[str]]


def exported_version_reader(symbol: str) -> VersionReader:
    """
    Build a reader that calls `symbol` in the loaded library, a function
    taking no arguments and returning the version as a C string.
    """

    def read(handle: Any) -> Optional[str]:
        function = getattr(handle, symbol)
        function.argtypes = []
        function.restype = ctypes.c_char_p
        value = function()
        if isinstance(value, bytes):
            return value.decode("utf-8", "replace")
        return value

    return read


class LibraryProbe:
    """
    Loads a candidate file and classifies the outcome as a ProbeResult.

    Expected per-candidate failures are returned, never raised.
    """

    def __init__(
        self,
        logger: LibresolverLogger,
        loader: Loader = ctypes.CDLL,
        version_reader: Optional[VersionReader] = None,
        min_size: int = 1024,
        incompatible_major: Optional[int] = None,
    ):
        """
        Args:
            logger: Logger for probe outcomes
            loader: Loads a library from a path and returns its handle
            version_reader: Reads the embedded version from a loaded handle
            min_size: Files smaller than this many bytes are not plausible libraries
            incompatible_major: First major version known to be incompatible
        """
        self.logger = logger
        self.loader = loader
        self.version_reader = version_reader
        self.min_size = min_size
        self.incompatible_major = incompatible_major

    @classmethod
    def from_config(
        cls,
        config: ResolverConfig,
        logger: LibresolverLogger,
        loader: Optional[Loader] = None,
        version_reader: Optional[VersionReader] = None,
    ) -> "LibraryProbe":
        if version_reader is None and config.version_symbol:
            version_reader = exported_version_reader(config.version_symbol)
        return cls(
            logger,
            loader=loader or ctypes.CDLL,
            version_reader=version_reader,
            min_size=config.min_library_size,
            incompatible_major=config.incompatible_major,
        )

    def check_file(self, path: str, origin: Optional[CandidateOrigin] = None) -> Optional[ProbeResult]:
        """
        The cheap checks done before loading. Returns None when the file is a
        plausible library, otherwise the result that rules it out.
        """
        if not os.path.isfile(path):
            return ProbeResult(path=path, loaded=False, failure_kind=FailureKind.NONE, origin=origin)

        size = os.path.getsize(path)
        if size < self.min_size:
            return ProbeResult(
                path=path,
                loaded=False,
                failure_kind=FailureKind.TOO_SMALL,
                message=f"{size} bytes, expected at least {self.min_size}",
                origin=origin,
            )
        return None

    def probe(self, path: str, origin: Optional[CandidateOrigin] = None) -> ProbeResult:
        """
        Try to load `path`.
        """
        ruled_out = self.check_file(path, origin)
        if ruled_out is not None:
            if ruled_out.failure_kind != FailureKind.NONE:
                self.logger.log(f"Skipping {path}: {ruled_out.describe()}", logging.DEBUG)
            return ruled_out

        try:
            handle = self.loader(path)
        except OSError as e:
            kind = FailureKind.BAD_IMAGE_FORMAT if self.is_bad_image_error(e) else FailureKind.LOAD_ERROR
            self.logger.log(f"Cannot load {path} ({kind.value}): {e}", logging.INFO)
            return ProbeResult(path=path, loaded=False, failure_kind=kind, message=str(e), origin=origin)
        except Exception as e:
            self.logger.log(f"Cannot load {path}: {e}", logging.INFO)
            return ProbeResult(
                path=path,
                loaded=False,
                failure_kind=FailureKind.LOAD_ERROR,
                message=f"{type(e).__name__}: {e}",
                origin=origin,
            )

        version = self.read_version(handle, path)
        warning = self.compatibility_warning(version)
        if warning:
            self.logger.log(warning, logging.WARNING)

        self.logger.log(
            f"Loaded {path} (version {version.raw if version else 'Unknown'})", logging.INFO
        )
        return ProbeResult(
            path=path,
            loaded=True,
            version=version,
            handle=handle,
            origin=origin,
            compatibility_warning=warning,
        )

    def read_version(self, handle: Any, path: str) -> Optional[SemanticVersion]:
        """
        Embedded version first, then the version marker next to the file,
        then a version in the file name. None means "Unknown".
        """
        if self.version_reader is not None:
            try:
                version = SemanticVersion.parse(self.version_reader(handle))
            except (AttributeError, OSError, ValueError, TypeError) as e:
                self.logger.log(f"No embedded version in {path}: {e}", logging.DEBUG)
                version = None
            if version:
                return version

        version = SemanticVersion.parse(self.read_marker(os.path.dirname(path)))
        if version:
            return version

        match = _FILENAME_VERSION_RE.search(os.path.basename(path))
        if match:
            return SemanticVersion.parse(match.group(1))
        return None

    @staticmethod
    def read_marker(directory: str) -> Optional[str]:
        """
        First line of the version marker in `directory`, if there is one.
        """
        marker = os.path.join(directory, VERSION_MARKER)
        if not os.path.isfile(marker):
            return None
        with open(marker, "r", encoding="utf-8") as f:
            return f.readline().strip() or None

    def compatibility_warning(self, version: Optional[SemanticVersion]) -> Optional[str]:
        if version is None or self.incompatible_major is None:
            return None
        if version.major >= self.incompatible_major:
            return (
                f"Library version {version.raw} has major version {version.major}; versions "
                f">= {self.incompatible_major} may be incompatible with the expected database schema"
            )
        return None

    @staticmethod
    def is_bad_image_error(error: OSError) -> bool:
        if getattr(error, "winerror", None) == WIN_ERROR_BAD_EXE_FORMAT:
            return True
        text = str(error).lower()
        return any(marker in text for marker in BAD_IMAGE_MARKERS)
