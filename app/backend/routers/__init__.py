"""
Routers package for FastAPI endpoints.

Organized by domain:
- extraction: Document upload and medical field extraction
- results: Display rows and care plan prompt for extracted data
"""

from . import extraction, results

__all__ = ["extraction", "results"]
