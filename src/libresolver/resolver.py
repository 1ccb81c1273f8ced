"""
The resolver ties the stages together: look for a usable local copy of the
library, and if there is none, fetch a release, install it and load it.

A process can load the library only once, so a LibraryResolver keeps the
first library it loads and hands the same object back on every later call.
"""

import logging
import os
import sys
import threading
import time
from typing import Callable, Dict, List, Optional, Sequence

import requests

from libresolver.libresolver_config import ResolverConfig, load_config
from libresolver.libresolver_exceptions import InstallFailed, NoMatchingAsset, NotFound
from libresolver.libresolver_logger import LibresolverLogger
from libresolver.libresolver_utils import PlatformUtils
from libresolver.runtime_dependency_config import AssetSelector, CandidatePathBuilder
from libresolver.runtime_dependency_downloader import ArchiveExtractor, CachingDownloader, ReleaseClient
from libresolver.runtime_dependency_downloader.downloader import ProgressCallback
from libresolver.runtime_dependency_loader import InstallVerifier, LibraryProbe
from libresolver.runtime_dependency_loader.probe import Loader, VersionReader
from libresolver.runtime_dependency_models import (
    CandidatePath,
    InstallationRecord,
    LoadedLibrary,
    ProbeResult,
    SemanticVersion,
)

EXTRACT_DIR_NAME = ".extract"


class LibraryResolver:
    """
    Locates, installs and loads the native library described by a ResolverConfig.
    """

    def __init__(
        self,
        config: ResolverConfig,
        logger: Optional[LibresolverLogger] = None,
        session: Optional[requests.Session] = None,
        loader: Optional[Loader] = None,
        version_reader: Optional[VersionReader] = None,
        sleep: Callable[[float], None] = time.sleep,
        path_entries: Optional[Sequence[str]] = None,
        well_known_dirs: Optional[Sequence[str]] = None,
        current_dir: Optional[str] = None,
    ):
        """
        Args:
            config: Effective configuration
            logger: Logger shared by every stage
            session: HTTP session for the release host and downloads
            loader: Library loader, ctypes.CDLL by default
            version_reader: Reads the embedded version from a loaded handle
            sleep: Used between release host retries
            path_entries: Directories searched after the current directory, PATH by default
            well_known_dirs: Directories searched last, the platform's library directories by default
            current_dir: The working directory to search, os.getcwd() by default
        """
        self.config = config
        self.logger = logger or LibresolverLogger()
        self.session = session or requests.Session()
        self.loader = loader
        self.version_reader = version_reader
        self.sleep = sleep
        self.path_entries = path_entries
        self.well_known_dirs = well_known_dirs
        self.current_dir = current_dir
        self._lock = threading.Lock()
        self._loaded: Optional[LoadedLibrary] = None

    @property
    def loaded(self) -> Optional[LoadedLibrary]:
        return self._loaded

    def effective_config(self, **overrides) -> ResolverConfig:
        return self.config.merged(**overrides)

    def make_probe(self, config: Optional[ResolverConfig] = None) -> LibraryProbe:
        return LibraryProbe.from_config(
            config or self.config, self.logger, loader=self.loader, version_reader=self.version_reader
        )

    def release_client(self, config: Optional[ResolverConfig] = None) -> ReleaseClient:
        return ReleaseClient.from_config(config or self.config, self.logger, session=self.session, sleep=self.sleep)

    def downloader(self, config: Optional[ResolverConfig] = None) -> CachingDownloader:
        config = config or self.config
        return CachingDownloader(
            self.logger,
            session=self.session,
            timeout=config.timeout,
            max_age=config.cache_max_age,
            user_agent=config.user_agent,
        )

    def installation(self, config: Optional[ResolverConfig] = None) -> Optional[InstallationRecord]:
        """
        The library currently in the install directory, if any.
        """
        config = config or self.config
        return InstallVerifier(self.logger, self.make_probe(config)).read_record(config.install_dir, config.library_names)

    def candidates(self, **overrides) -> List[CandidatePath]:
        """
        The ordered list of locations the fast path probes.
        """
        config = self.effective_config(**overrides)
        builder = CandidatePathBuilder(config.library_names)
        script_dir = config.script_dir
        if script_dir is None and sys.argv and sys.argv[0]:
            script_dir = os.path.dirname(os.path.abspath(sys.argv[0]))
        db_dir = os.path.dirname(os.path.abspath(config.db_path)) if config.db_path else None

        return builder.build(
            user_path=config.library_path,
            install_dir=config.install_dir,
            script_dir=script_dir,
            db_dir=db_dir,
            current_dir=self.current_dir or os.getcwd(),
            path_entries=PlatformUtils.path_entries() if self.path_entries is None else self.path_entries,
            well_known_dirs=(
                PlatformUtils.well_known_library_dirs() if self.well_known_dirs is None else self.well_known_dirs
            ),
        )

    def ensure_installed(self, progress: Optional[ProgressCallback] = None, **overrides) -> LoadedLibrary:
        """
        Return the loaded library, installing it first if no local copy loads.

        Keyword overrides are applied on top of the resolver's configuration
        for this call only, e.g. ensure_installed(version="1.1.3", force=True).

        Args:
            progress: Optional callable(bytes_read, total_bytes) for the download

        Raises:
            NotFound: No local copy loads and installing is disabled
            LibresolverException: Any failure of the install pipeline, with the action and cause
        """
        with self._lock:
            if self._loaded is not None:
                return self._loaded

            config = self.effective_config(**overrides)
            probe = self.make_probe(config)

            searched: List[str] = []
            failures: Dict[str, str] = {}
            if config.force:
                self.logger.log("Forced install requested, skipping local candidates", logging.INFO)
            else:
                for candidate in self.candidates(**overrides):
                    searched.append(candidate.path)
                    result = probe.probe(candidate.path, candidate.origin)
                    if result.loaded:
                        self._loaded = LoadedLibrary.from_probe(result)
                        self.logger.log(
                            f"Using {result.path} ({candidate.origin.value}), version {result.version_text}",
                            logging.INFO,
                        )
                        return self._loaded
                    if result.is_candidate:
                        failures[candidate.path] = result.describe()

            if not config.may_install:
                raise NotFound(
                    f"No usable {config.library_names[0]} found and automatic installation is disabled",
                    searched=searched,
                    failures=failures,
                    action="resolving the native library",
                )

            self._loaded = self._install(config, probe, progress)
            return self._loaded

    def _install(self, config: ResolverConfig, probe: LibraryProbe, progress: Optional[ProgressCallback]) -> LoadedLibrary:
        release = self.release_client(config).resolve(config.owner, config.repo, config.version, token=config.token)

        asset = AssetSelector(config.asset_patterns).select(release.assets)
        if asset is None:
            raise NoMatchingAsset(
                f"Release {release.tag} of {config.owner}/{config.repo} has no assets",
                action=f"selecting an asset of {release.tag}",
            )
        self.logger.log(f"Selected asset {asset.name} of release {release.tag}", logging.INFO)

        archive_path = self.downloader(config).download(asset, config.cache_dir, progress)

        extract_dir = os.path.join(config.install_dir, EXTRACT_DIR_NAME)
        ArchiveExtractor(self.logger).extract(archive_path, extract_dir)

        result = self._probe_extracted(config, probe, extract_dir, asset.name)
        record = InstallVerifier(self.logger, probe).install(result, config.install_dir, release.tag)

        version = result.version or SemanticVersion.parse(release.tag)
        return LoadedLibrary(
            path=result.path,
            version=version,
            handle=result.handle,
            origin=result.origin,
            compatibility_warning=probe.compatibility_warning(version),
            record=record,
        )

    def _probe_extracted(
        self, config: ResolverConfig, probe: LibraryProbe, extract_dir: str, asset_name: str
    ) -> ProbeResult:
        action = f"searching {asset_name} for {', '.join(config.library_names)}"
        found = CandidatePathBuilder(config.library_names).build_for_tree(extract_dir)
        if not found:
            raise InstallFailed(f"{asset_name} does not contain the library", action=action)

        reasons = []
        for candidate in found:
            result = probe.probe(candidate.path, candidate.origin)
            if result.loaded:
                return result
            reasons.append(f"{os.path.relpath(candidate.path, extract_dir)}: {result.describe()}")

        raise InstallFailed(
            f"No library in {asset_name} could be loaded ({'; '.join(reasons)})", action=action
        )


_default_resolver: Optional[LibraryResolver] = None
_default_lock = threading.Lock()


def default_resolver() -> LibraryResolver:
    """
    The process-wide resolver, configured from the default config file and the environment.
    """
    global _default_resolver
    with _default_lock:
        if _default_resolver is None:
            _default_resolver = LibraryResolver(load_config())
        return _default_resolver


def ensure_installed(progress: Optional[ProgressCallback] = None, **overrides) -> LoadedLibrary:
    """
    Shortcut for default_resolver().ensure_installed(...).
    """
    return default_resolver().ensure_installed(progress=progress, **overrides)
