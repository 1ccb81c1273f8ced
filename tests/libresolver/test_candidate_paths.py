"""
Tests for candidate path planning.
"""

import os

import pytest

from libresolver.runtime_dependency_config import CandidatePathBuilder
from libresolver.runtime_dependency_models import CandidateOrigin

NAMES = ["libduckdb.so", "duckdb.so"]


class TestCandidatePathBuilder:
    """Tests for CandidatePathBuilder.build."""

    @pytest.fixture
    def builder(self):
        return CandidatePathBuilder(NAMES)

    def test_search_order(self, builder):
        """Locations are listed in search order, names in preference order within each."""
        candidates = builder.build(
            user_path="/opt/custom",
            install_dir="/srv/install",
            script_dir="/srv/app",
            db_dir="/data",
            current_dir="/home/user",
            path_entries=["/usr/bin"],
            well_known_dirs=["/usr/lib"],
        )

        assert [c.path for c in candidates] == ["/opt/custom"] + [
            os.path.join(directory, name)
            for directory in ["/opt/custom", "/srv/install", "/srv/app", "/data", "/home/user", "/usr/bin", "/usr/lib"]
            for name in NAMES
        ]
        assert [c.origin for c in candidates[:3:2]] == [CandidateOrigin.USER, CandidateOrigin.USER]
        assert [c.origin for c in candidates[1::2]] == [
            CandidateOrigin.USER,
            CandidateOrigin.INSTALL_DIR,
            CandidateOrigin.SCRIPT_DIR,
            CandidateOrigin.DB_DIR,
            CandidateOrigin.CWD,
            CandidateOrigin.PATH_ENTRY,
            CandidateOrigin.WELL_KNOWN_DIR,
        ]

    def test_user_path_naming_a_library_file_is_used_as_given(self, builder):
        """A user path whose basename is a library name is tried verbatim."""
        candidates = builder.build(user_path="/opt/duckdb/libduckdb.so", install_dir="/srv/install")

        assert candidates[0].path == "/opt/duckdb/libduckdb.so"
        assert candidates[0].origin == CandidateOrigin.USER
        assert len(candidates) == 1 + len(NAMES)

    def test_user_path_with_other_name_is_tried_first(self, builder):
        """A versioned or renamed file is probed itself before being searched as a directory."""
        candidates = builder.build(user_path="/opt/vendor/libduckdb.so.1.1.3", install_dir="/srv/install")

        assert [c.path for c in candidates[:3]] == [
            "/opt/vendor/libduckdb.so.1.1.3",
            "/opt/vendor/libduckdb.so.1.1.3/libduckdb.so",
            "/opt/vendor/libduckdb.so.1.1.3/duckdb.so",
        ]
        assert all(c.origin == CandidateOrigin.USER for c in candidates[:3])

    def test_overlapping_directories_are_deduplicated(self, builder):
        """The first occurrence of a path wins and keeps its origin."""
        candidates = builder.build(
            install_dir="/srv/app",
            script_dir="/srv/app",
            db_dir="/srv/app",
            current_dir="/srv/app",
            path_entries=["/srv/app", "/usr/bin", "/usr/bin"],
            well_known_dirs=["/usr/bin"],
        )

        paths = [c.path for c in candidates]
        assert len(paths) == len(set(paths))
        assert paths == [os.path.join(d, n) for d in ["/srv/app", "/usr/bin"] for n in NAMES]
        assert candidates[0].origin == CandidateOrigin.INSTALL_DIR
        assert candidates[2].origin == CandidateOrigin.PATH_ENTRY

    @pytest.mark.parametrize(
        "kwargs",
        [
            {},
            {"install_dir": "/a"},
            {"install_dir": "/a", "script_dir": "/a", "current_dir": "/b"},
            {"user_path": "/a/libduckdb.so", "install_dir": "/a", "path_entries": ["/a", "/b", "/a"]},
            {"db_dir": "/c", "well_known_dirs": ["/c", "/c", "/d"]},
        ],
    )
    def test_no_duplicates_and_stable(self, builder, kwargs):
        """Any input combination yields a duplicate-free list, identical on every call."""
        first = builder.build(**kwargs)
        second = builder.build(**kwargs)

        assert first == second
        assert len({c.path for c in first}) == len(first)

    def test_build_does_not_touch_the_filesystem(self, builder, tmp_path):
        """Nonexistent directories are still listed; existence is decided later."""
        missing = str(tmp_path / "does-not-exist")
        candidates = builder.build(install_dir=missing)

        assert [c.path for c in candidates] == [os.path.join(missing, n) for n in NAMES]

    def test_requires_a_library_name(self):
        with pytest.raises(ValueError):
            CandidatePathBuilder([])


class TestBuildForTree:
    """Tests for CandidatePathBuilder.build_for_tree."""

    def test_orders_by_name_preference_then_depth(self, tmp_path):
        """Preferred names come first; shallower files before deeper ones."""
        for relative in ["a/b/libduckdb.so", "libduckdb.so", "z/duckdb.so", "a/readme.txt"]:
            path = tmp_path / relative
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_bytes(b"x")

        found = CandidatePathBuilder(NAMES).build_for_tree(str(tmp_path))

        assert [os.path.relpath(c.path, tmp_path) for c in found] == [
            "libduckdb.so",
            os.path.join("a", "b", "libduckdb.so"),
            os.path.join("z", "duckdb.so"),
        ]
        assert all(c.origin == CandidateOrigin.EXTRACTED for c in found)

    def test_empty_tree(self, tmp_path):
        assert CandidatePathBuilder(NAMES).build_for_tree(str(tmp_path)) == []
