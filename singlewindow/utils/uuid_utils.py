# =============================================================================
# File: singlewindow/utils/uuid_utils.py
# Description: Identifier generation for declarations, guarantees and events
# =============================================================================

import uuid
from uuid import UUID


def generate_uuid() -> UUID:
    """Generate a new random UUID (v4)."""
    return uuid.uuid4()


def generate_reference(prefix: str) -> str:
    """
    Generate a short human-readable reference, e.g. "GRN-3F2A9C1B7D4E".

    Twelve hex characters of a random UUID, upper-cased.
    """
    return f"{prefix}-{uuid.uuid4().hex[:12].upper()}"

# =============================================================================
# EOF
# =============================================================================
