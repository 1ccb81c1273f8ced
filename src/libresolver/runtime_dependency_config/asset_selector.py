"""
Picks the release asset to download.
"""

import fnmatch
from typing import List, Optional, Sequence, Tuple

from libresolver.runtime_dependency_models import Asset


class AssetSelector:
    """
    Chooses an asset by ordered glob preference.

    The first pattern that matches anything wins. Among several matches the
    smallest asset is taken, since a compiled binary archive is usually
    smaller than a bundled source tree. When nothing matches the first asset
    is returned as a last resort.
    """

    def __init__(self, patterns: Sequence[str]):
        self.patterns: Tuple[str, ...] = tuple(patterns)

    def matches(self, pattern: str, assets: Sequence[Asset]) -> List[Asset]:
        pattern = pattern.lower()
        return [asset for asset in assets if fnmatch.fnmatchcase(asset.name.lower(), pattern)]

    def select(self, assets: Sequence[Asset]) -> Optional[Asset]:
        if not assets:
            return None

        for pattern in self.patterns:
            matched = self.matches(pattern, assets)
            if matched:
                # min() keeps the first of equally small assets
                return min(matched, key=lambda asset: asset.size_bytes)

        return assets[0]
