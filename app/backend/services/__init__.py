"""
Services package for the medical document extraction service.

Contains:
- document_service: Upload validation and image/PDF preparation
- ai: Provider integration for medical field extraction
- display: Display rows for extracted data
- prompt_service: Care plan prompt assembly
"""

from .document_service import DocumentService
from .ai import AIService

__all__ = ["DocumentService", "AIService"]
