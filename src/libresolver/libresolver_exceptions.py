"""
This module contains the exceptions raised by libresolver.

Every fatal error carries the action that was being attempted and the final
underlying cause, so a failed run can be diagnosed from its message alone.
"""

from typing import List, Optional, Sequence


class LibresolverException(Exception):
    """
    Base exception for libresolver.
    """

    def __init__(self, message: str, action: Optional[str] = None, cause: Optional[BaseException] = None) -> None:
        self.message = message
        self.action = action
        self.cause = cause
        super().__init__(self._render())

    def _render(self) -> str:
        text = self.message
        if self.action:
            text = f"{text} (while {self.action})"
        if self.cause is not None:
            text = f"{text}: {self.cause}"
        return text


class ConfigError(LibresolverException):
    """Raised for an unreadable config file or invalid settings."""


class NotFound(LibresolverException):
    """
    No local candidate could be loaded and installing was unavailable or declined.

    `searched` holds every location that was considered, in search order, and
    `failures` maps the paths that existed but failed to load to the reason.
    """

    def __init__(
        self,
        message: str,
        searched: Sequence[str] = (),
        failures: Optional[dict] = None,
        action: Optional[str] = None,
        cause: Optional[BaseException] = None,
    ) -> None:
        self.searched: List[str] = list(searched)
        self.failures = dict(failures or {})
        super().__init__(message, action=action, cause=cause)

    def _render(self) -> str:
        lines = [super()._render()]
        if self.searched:
            lines.append("Searched locations:")
            for path in self.searched:
                reason = self.failures.get(path)
                lines.append(f"  - {path}" + (f" [{reason}]" if reason else ""))
        lines.append(
            "Install the library into one of these locations, pass an explicit "
            "library path, or allow automatic installation."
        )
        return "\n".join(lines)


class NetworkError(LibresolverException):
    """Transient failure talking to the release host."""

    def __init__(self, message: str, status: Optional[int] = None, **kwargs) -> None:
        self.status = status
        super().__init__(message, **kwargs)


class ReleaseNotFound(LibresolverException):
    """The requested release does not exist or could not be resolved."""


class InvalidReleasePayload(ReleaseNotFound):
    """The release host answered with JSON that does not describe a release."""


class NoMatchingAsset(LibresolverException):
    """The resolved release has no downloadable assets."""


class DownloadFailed(LibresolverException):
    """An asset could not be downloaded into the cache."""


class UnsupportedFormat(LibresolverException):
    """The archive extension is not one the extractor knows."""


class ExtractFailed(LibresolverException):
    """The archive could not be unpacked."""


class InstallFailed(LibresolverException):
    """The library could not be copied into the install directory or verified there."""
