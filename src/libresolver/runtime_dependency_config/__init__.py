"""
Runtime dependency search configuration.

This package handles:
1. Planning which local paths may already hold the library
2. Choosing which release asset to download when none does
"""

from .asset_selector import AssetSelector
from .candidate_paths import CandidatePathBuilder

__all__ = ["AssetSelector", "CandidatePathBuilder"]
