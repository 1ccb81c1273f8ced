"""
Runtime dependency models for libresolver.

This package provides the typed records passed between the resolver stages:
release descriptors parsed from the release host, candidate locations, probe
outcomes, cache entries and installation records.
"""

from .library import (
    UNKNOWN_VERSION,
    CacheEntry,
    CandidateOrigin,
    CandidatePath,
    FailureKind,
    InstallationRecord,
    LoadedLibrary,
    ProbeResult,
    SemanticVersion,
)
from .release import Asset, ReleaseDescriptor

__all__ = [
    # Release host
    "Asset",
    "ReleaseDescriptor",
    # Local library
    "CacheEntry",
    "CandidateOrigin",
    "CandidatePath",
    "FailureKind",
    "InstallationRecord",
    "LoadedLibrary",
    "ProbeResult",
    "SemanticVersion",
    "UNKNOWN_VERSION",
]
