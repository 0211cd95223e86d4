"""Import preview construction"""

from .preview_builder import ImportPreviewBuilder

__all__ = ["ImportPreviewBuilder"]
