# =============================================================================
# File: singlewindow/common/__init__.py
# Description: Shared base classes and exceptions
# =============================================================================
