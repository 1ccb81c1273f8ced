"""
Data models describing local copies of the library: where to look for it,
what happened when it was probed, and what got installed.
"""

import re
import time
from dataclasses import dataclass
from enum import Enum
from typing import Any, NamedTuple, Optional

UNKNOWN_VERSION = "Unknown"

_VERSION_RE = re.compile(
    r"^\s*[vV]?(?P<major>\d+)(?:\.(?P<minor>\d+))?(?:\.(?P<patch>\d+))?(?:[-+.](?P<label>[0-9A-Za-z.\-+]+))?\s*$"
)


class SemanticVersion(NamedTuple):
    """
    A parsed "major.minor.patch[-label]" version. `raw` keeps the original text.
    """

    major: int
    minor: int
    patch: int
    label: str
    raw: str

    @classmethod
    def parse(cls, text: Optional[str]) -> Optional["SemanticVersion"]:
        """
        Parse "v1.2.3", "4.1.4", "1.2" or "1.2.3-rc1". Returns None when `text` is not a version.
        """
        if not text:
            return None
        match = _VERSION_RE.match(text)
        if not match:
            return None
        return cls(
            major=int(match.group("major")),
            minor=int(match.group("minor") or 0),
            patch=int(match.group("patch") or 0),
            label=match.group("label") or "",
            raw=text.strip(),
        )

    def __str__(self) -> str:
        base = f"{self.major}.{self.minor}.{self.patch}"
        return f"{base}-{self.label}" if self.label else base


class CandidateOrigin(str, Enum):
    """
    Where a candidate path came from, in search order.
    """

    USER = "user"
    INSTALL_DIR = "install-dir"
    SCRIPT_DIR = "script-dir"
    DB_DIR = "db-dir"
    CWD = "cwd"
    PATH_ENTRY = "path-entry"
    WELL_KNOWN_DIR = "well-known-dir"
    EXTRACTED = "extracted"


@dataclass(frozen=True)
class CandidatePath:
    path: str
    origin: CandidateOrigin

    def __str__(self) -> str:
        return self.path


class FailureKind(str, Enum):
    """
    Outcome classification of a probe. NONE on a result that did not load
    means the file does not exist, so it was never a candidate.
    """

    NONE = "none"
    TOO_SMALL = "too_small"
    BAD_IMAGE_FORMAT = "bad_image_format"
    LOAD_ERROR = "load_error"


@dataclass(frozen=True)
class ProbeResult:
    """
    The result of trying to load one candidate file.

    On success `handle` is the loaded library object; it belongs to the caller.
    """

    path: str
    loaded: bool
    failure_kind: FailureKind = FailureKind.NONE
    version: Optional[SemanticVersion] = None
    message: str = ""
    handle: Any = None
    origin: Optional[CandidateOrigin] = None
    compatibility_warning: Optional[str] = None

    @property
    def is_candidate(self) -> bool:
        """False when the path did not exist at all."""
        return self.loaded or self.failure_kind != FailureKind.NONE

    @property
    def version_text(self) -> str:
        return self.version.raw if self.version else UNKNOWN_VERSION

    def describe(self) -> str:
        if self.loaded:
            return f"loaded {self.version_text}"
        if self.failure_kind == FailureKind.NONE:
            return "not present"
        if self.message:
            return f"{self.failure_kind.value}: {self.message}"
        return self.failure_kind.value


@dataclass(frozen=True)
class CacheEntry:
    """
    A downloaded asset in the cache. Entries are replaced, never modified.
    """

    key: str
    path: str
    last_write: float

    def age(self, now: Optional[float] = None) -> float:
        return (time.time() if now is None else now) - self.last_write

    def is_fresh(self, max_age: float, now: Optional[float] = None) -> bool:
        return self.age(now) < max_age


@dataclass(frozen=True)
class InstallationRecord:
    install_dir: str
    library_path: str
    version: str
    valid: bool


@dataclass(frozen=True)
class LoadedLibrary:
    """
    The handle returned to the rest of the program.

    `handle` is the dynamically loaded library. It lives for the rest of the
    process; nothing ever unloads it.
    """

    path: str
    version: Optional[SemanticVersion]
    handle: Any
    origin: Optional[CandidateOrigin] = None
    compatibility_warning: Optional[str] = None
    record: Optional[InstallationRecord] = None

    @property
    def major_version(self) -> Optional[int]:
        return self.version.major if self.version else None

    @property
    def version_text(self) -> str:
        return self.version.raw if self.version else UNKNOWN_VERSION

    @classmethod
    def from_probe(cls, result: ProbeResult, record: Optional[InstallationRecord] = None) -> "LoadedLibrary":
        return cls(
            path=result.path,
            version=result.version,
            handle=result.handle,
            origin=result.origin,
            compatibility_warning=result.compatibility_warning,
            record=record,
        )
