# =============================================================================
# File: singlewindow/customs/ports/document_store_port.py
# Description: Port interface for the document store
# Pattern: Hexagonal Architecture / Ports & Adapters
# =============================================================================

from __future__ import annotations

import uuid
from typing import Protocol, runtime_checkable


@runtime_checkable
class DocumentStorePort(Protocol):
    """
    Port: Document store (invoices, certificates, licences as opaque blobs)

    Defined by: Customs Domain
    Implemented by: the hosting platform's document service adapter

    The core only asks whether the required set is complete; it never
    fetches or validates document content.
    """

    def is_document_set_complete(self, declaration_id: uuid.UUID) -> bool:
        """
        Whether every document required for the declaration is on file.

        Args:
            declaration_id: Declaration identifier

        Returns:
            True when the document set is complete
        """
        ...

# =============================================================================
# EOF
# =============================================================================
