"""
Shared helpers: path keys, logging and console output.
"""

from mirrorsync.utils.paths import normalize_key, relative_key, resolve_under_root

__all__ = ["normalize_key", "relative_key", "resolve_under_root"]
