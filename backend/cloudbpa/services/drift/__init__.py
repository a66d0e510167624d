"""
Drift layer: differential analysis between two analysis snapshots.
"""

from .differential import DifferentialAnalyzer, changed_paths

__all__ = ["DifferentialAnalyzer", "changed_paths"]
