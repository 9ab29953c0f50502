"""Static tag annotations and distribution report."""

from .static_documents import StaticDocumentProvider

__all__ = ["StaticDocumentProvider"]
