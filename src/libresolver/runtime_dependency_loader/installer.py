"""
Installation of a verified library into the install directory.
"""

import logging
import os
from typing import Optional, Sequence

from libresolver.libresolver_exceptions import InstallFailed
from libresolver.libresolver_logger import LibresolverLogger
from libresolver.libresolver_utils import FileUtils
from libresolver.runtime_dependency_loader.probe import VERSION_MARKER, LibraryProbe
from libresolver.runtime_dependency_models import InstallationRecord, ProbeResult, SemanticVersion


class InstallVerifier:
    """
    Copies a library that has already been loaded successfully into the
    install directory, writes the version marker next to it and checks the
    result.

    The installed copy is not loaded again: the extracted file it was copied
    from is already mapped into the process, and a second load of the same
    library under another path would map a second copy. The check is
    therefore a byte-size comparison plus the probe's file plausibility checks.
    """

    def __init__(self, logger: LibresolverLogger, probe: LibraryProbe):
        self.logger = logger
        self.probe = probe

    def install(self, probe_result: ProbeResult, install_dir: str, tag: str) -> InstallationRecord:
        """
        Install the library `probe_result` points at.

        Args:
            probe_result: A successful probe of the extracted library
            install_dir: Destination directory, created if missing
            tag: Release tag written to the version marker

        Returns:
            The record of the verified installation

        Raises:
            InstallFailed: If the copy, the marker write or the verification fails
        """
        source = probe_result.path
        destination = os.path.join(install_dir, os.path.basename(source))
        action = f"installing {source} into {install_dir}"

        if not probe_result.loaded:
            raise InstallFailed(f"{source} was not loaded successfully ({probe_result.describe()})", action=action)

        try:
            if os.path.abspath(source) != os.path.abspath(destination):
                FileUtils.atomic_copy(source, destination)
            FileUtils.atomic_write_text(os.path.join(install_dir, VERSION_MARKER), f"{tag}\n")
        except OSError as e:
            raise InstallFailed(f"Could not install {os.path.basename(source)}", action=action, cause=e) from e

        expected = os.path.getsize(source)
        actual = os.path.getsize(destination) if os.path.isfile(destination) else -1
        if actual != expected:
            raise InstallFailed(
                f"Installed copy {destination} has {actual} bytes, expected {expected}", action=action
            )

        ruled_out = self.probe.check_file(destination)
        if ruled_out is not None:
            raise InstallFailed(f"Installed copy {destination} is not usable ({ruled_out.describe()})", action=action)

        version = SemanticVersion.parse(tag) or probe_result.version
        warning = self.probe.compatibility_warning(version)
        if warning and warning != probe_result.compatibility_warning:
            self.logger.log(warning, logging.WARNING)

        self.logger.log(f"Installed {os.path.basename(source)} {tag} into {install_dir}", logging.INFO)
        return InstallationRecord(install_dir=install_dir, library_path=destination, version=tag, valid=True)

    def read_record(self, install_dir: str, library_names: Sequence[str]) -> Optional[InstallationRecord]:
        """
        Describe an existing installation in `install_dir`, or None when no
        library file is there. `valid` is False when the version marker is
        missing or the file fails the plausibility checks.
        """
        for name in library_names:
            path = os.path.join(install_dir, name)
            if not os.path.isfile(path):
                continue
            marker = LibraryProbe.read_marker(install_dir)
            valid = marker is not None and self.probe.check_file(path) is None
            return InstallationRecord(install_dir=install_dir, library_path=path, version=marker or "", valid=valid)
        return None
