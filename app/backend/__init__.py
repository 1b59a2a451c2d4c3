"""
MediScript Extraction Backend Application.

A FastAPI service that extracts structured fields from photos of medical
documents using a multimodal model (Gemini by default) and assembles a
care plan prompt from them.
"""

__version__ = "1.0.0"
