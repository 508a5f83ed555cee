# =============================================================================
# Single Window Clearance Core - Main Package
# =============================================================================
"""
Single Window Clearance Core

Trade-declaration message codec (CUSDEC / CUSRES) and the risk-based
clearance state machine of a national customs single window.

Version is loaded from installed package metadata (pyproject.toml).
"""

from __future__ import annotations

from importlib.metadata import PackageNotFoundError, version


def _get_version() -> str:
    """
    Get package version from installed metadata.

    Returns:
        Version string (e.g., "0.3.0")
    """
    try:
        return version("singlewindow-clearance")
    except PackageNotFoundError:
        # Source checkout without an install
        return "0.0.0+local"


__version__: str = _get_version()
__description__: str = "Single Window - customs message codec and clearance core"

# =============================================================================
# EXPORTS
# =============================================================================
__all__ = [
    "__version__",
    "__description__",
]
