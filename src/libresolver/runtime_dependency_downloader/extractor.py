"""
Archive extraction, dispatched on file extension.
"""

import logging
import os
import shutil
import tarfile
import zipfile

from libresolver.libresolver_exceptions import ExtractFailed, UnsupportedFormat
from libresolver.libresolver_logger import LibresolverLogger
from libresolver.libresolver_utils import FileUtils

# A .nupkg is a zip file with NuGet metadata, which is ignored
ZIP_EXTENSIONS = (".zip", ".nupkg")
TAR_EXTENSIONS = (".tar.gz", ".tgz")


class ArchiveExtractor:
    """
    Unpacks zip, nupkg and gzip'd tar archives into a freshly created directory.
    """

    def __init__(self, logger: LibresolverLogger):
        self.logger = logger

    @staticmethod
    def archive_format(archive_path: str) -> str:
        """
        Returns "zip" or "tar" for a supported archive.

        Raises:
            UnsupportedFormat: For any other extension
        """
        extension = FileUtils.archive_extension(os.path.basename(archive_path))
        if extension in ZIP_EXTENSIONS:
            return "zip"
        if extension in TAR_EXTENSIONS:
            return "tar"
        raise UnsupportedFormat(
            f"Unsupported archive format: {os.path.basename(archive_path)}",
            action=f"extracting {archive_path}",
        )

    def extract(self, archive_path: str, dest_dir: str) -> str:
        """
        Extract `archive_path` into `dest_dir`, removing anything already there.

        The archive itself is never modified or deleted.

        Returns:
            The directory the archive was extracted into

        Raises:
            UnsupportedFormat: Before anything is created, for an unknown extension
            ExtractFailed: If the archive is missing, corrupt or escapes the destination
        """
        archive_format = self.archive_format(archive_path)
        action = f"extracting {archive_path}"
        if not os.path.isfile(archive_path):
            raise ExtractFailed(f"Archive does not exist: {archive_path}", action=action)

        try:
            if os.path.lexists(dest_dir):
                shutil.rmtree(dest_dir)
            os.makedirs(dest_dir)
        except OSError as e:
            raise ExtractFailed(f"Cannot prepare {dest_dir}", action=action, cause=e) from e

        self.logger.log(f"Extracting {archive_path} to {dest_dir}", logging.INFO)
        try:
            if archive_format == "zip":
                self._extract_zip(archive_path, dest_dir)
            else:
                self._extract_tar(archive_path, dest_dir)
        except ExtractFailed:
            raise
        except (zipfile.BadZipFile, tarfile.TarError, EOFError, OSError) as e:
            raise ExtractFailed(f"Could not extract {os.path.basename(archive_path)}", action=action, cause=e) from e

        return dest_dir

    def _extract_zip(self, archive_path: str, dest_dir: str) -> None:
        with zipfile.ZipFile(archive_path) as archive:
            for name in archive.namelist():
                self._check_member(name, dest_dir, archive_path)
            archive.extractall(dest_dir)

    def _extract_tar(self, archive_path: str, dest_dir: str) -> None:
        with tarfile.open(archive_path, "r:gz") as archive:
            members = archive.getmembers()
            for member in members:
                self._check_member(member.name, dest_dir, archive_path)
                if member.issym() or member.islnk():
                    link_base = os.path.dirname(member.name) if member.issym() else ""
                    self._check_member(os.path.join(link_base, member.linkname), dest_dir, archive_path)
                elif not (member.isfile() or member.isdir()):
                    raise ExtractFailed(
                        f"Archive member {member.name} is not a regular file or directory",
                        action=f"extracting {archive_path}",
                    )
            if hasattr(tarfile, "data_filter"):
                archive.extractall(dest_dir, members=members, filter="data")
            else:
                archive.extractall(dest_dir, members=members)

    @staticmethod
    def _check_member(name: str, dest_dir: str, archive_path: str) -> None:
        root = os.path.realpath(dest_dir)
        target = os.path.realpath(os.path.join(root, name))
        if os.path.isabs(name) or os.path.commonpath([root, target]) != root:
            raise ExtractFailed(
                f"Archive member {name} would be written outside {dest_dir}",
                action=f"extracting {archive_path}",
            )
