"""
Tests for release asset selection.
"""

from libresolver.libresolver_utils import PlatformId, PlatformUtils
from libresolver.runtime_dependency_config import AssetSelector
from libresolver.runtime_dependency_models import Asset


def make_asset(name, size=100):
    return Asset(name=name, size_bytes=size, download_url=f"https://downloads.example.com/{name}")


class TestAssetSelector:
    """Tests for AssetSelector.select."""

    def test_first_matching_pattern_wins(self):
        """A Windows zip preference picks the Windows zip over generic archives."""
        assets = [make_asset("x.tar.gz"), make_asset("x-win-x64.zip"), make_asset("x.zip")]
        selector = AssetSelector(["*win-x64*.zip", "*.zip", "*.tar.gz"])

        assert selector.select(assets).name == "x-win-x64.zip"

    def test_empty_list_returns_none(self):
        assert AssetSelector(["*.zip"]).select([]) is None

    def test_smallest_match_wins(self):
        """Two assets matching the same pattern: the smaller one is taken."""
        assets = [make_asset("big.zip", 100), make_asset("small.zip", 50)]

        assert AssetSelector(["*.zip"]).select(assets).name == "small.zip"

    def test_equal_sizes_keep_listing_order(self):
        assets = [make_asset("first.zip", 50), make_asset("second.zip", 50)]

        assert AssetSelector(["*.zip"]).select(assets).name == "first.zip"

    def test_no_match_falls_back_to_first_asset(self):
        assets = [make_asset("checksums.txt"), make_asset("notes.md")]

        assert AssetSelector(["*.zip"]).select(assets).name == "checksums.txt"

    def test_patterns_are_case_insensitive(self):
        assets = [make_asset("LIBDUCKDB-LINUX-AMD64.ZIP"), make_asset("other.tar.gz")]

        assert AssetSelector(["libduckdb-linux-amd64.zip"]).select(assets).name == "LIBDUCKDB-LINUX-AMD64.ZIP"

    def test_default_patterns_prefer_platform_binary(self):
        """The default patterns pick the platform archive over sources and other platforms."""
        assets = [
            make_asset("duckdb-src.zip", 10),
            make_asset("libduckdb-osx-universal.zip", 300),
            make_asset("libduckdb-linux-amd64.zip", 500),
            make_asset("libduckdb-windows-amd64.zip", 400),
        ]
        patterns = PlatformUtils.default_asset_patterns("duckdb", PlatformId.LINUX_x64)

        assert AssetSelector(patterns).select(assets).name == "libduckdb-linux-amd64.zip"
