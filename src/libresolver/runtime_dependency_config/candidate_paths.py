"""
Candidate location planning.

Builds the ordered list of files that may already be a usable copy of the
library. Building performs no filesystem access; existence is the probe's job.
"""

import os
from typing import Iterable, List, Optional, Sequence, Tuple

from libresolver.runtime_dependency_models import CandidateOrigin, CandidatePath


class CandidatePathBuilder:
    """
    Enumerates candidate library paths, de-duplicated, in search order.

    Search order is: explicit user path, install directory, script directory,
    database-file directory, current directory, PATH entries, well-known
    system directories. Within each directory the library names are tried in
    the order given (most preferred first).
    """

    def __init__(self, library_names: Sequence[str]):
        """
        Args:
            library_names: Acceptable file basenames, most preferred first
        """
        if not library_names:
            raise ValueError("At least one library file name is required")
        self.library_names: Tuple[str, ...] = tuple(library_names)

    def build(
        self,
        user_path: Optional[str] = None,
        install_dir: Optional[str] = None,
        script_dir: Optional[str] = None,
        db_dir: Optional[str] = None,
        current_dir: Optional[str] = None,
        path_entries: Iterable[str] = (),
        well_known_dirs: Iterable[str] = (),
    ) -> List[CandidatePath]:
        """
        Build the candidate list.

        `user_path` is always the first candidate, as given. Unless its
        basename is one of the library names it may also be a directory, so
        the library names joined to it follow.

        Returns:
            Candidate paths, first occurrence of each path kept
        """
        candidates: List[CandidatePath] = []
        seen = set()

        def add(path: str, origin: CandidateOrigin) -> None:
            if path in seen:
                return
            seen.add(path)
            candidates.append(CandidatePath(path=path, origin=origin))

        def add_dir(directory: Optional[str], origin: CandidateOrigin) -> None:
            if not directory:
                return
            for name in self.library_names:
                add(os.path.join(directory, name), origin)

        if user_path:
            add(user_path, CandidateOrigin.USER)
            if os.path.basename(user_path) not in self.library_names:
                add_dir(user_path, CandidateOrigin.USER)

        add_dir(install_dir, CandidateOrigin.INSTALL_DIR)
        add_dir(script_dir, CandidateOrigin.SCRIPT_DIR)
        add_dir(db_dir, CandidateOrigin.DB_DIR)
        add_dir(current_dir, CandidateOrigin.CWD)
        for entry in path_entries:
            add_dir(entry, CandidateOrigin.PATH_ENTRY)
        for entry in well_known_dirs:
            add_dir(entry, CandidateOrigin.WELL_KNOWN_DIR)

        return candidates

    def build_for_tree(self, root: str) -> List[CandidatePath]:
        """
        Find every file under `root` whose name is one of the library names.

        Unlike `build`, this walks the directory tree. Results are ordered by
        name preference, then by depth, then by path.
        """
        rank = {name: index for index, name in enumerate(self.library_names)}
        found = []
        for dirpath, dirnames, filenames in os.walk(root):
            dirnames.sort()
            for filename in filenames:
                if filename in rank:
                    full = os.path.join(dirpath, filename)
                    depth = os.path.relpath(full, root).count(os.sep)
                    found.append((rank[filename], depth, full))

        found.sort()
        return [CandidatePath(path=path, origin=CandidateOrigin.EXTRACTED) for _, _, path in found]
