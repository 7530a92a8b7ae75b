"""Storage for persisting LSP projects and evaluation results.

This module provides:
- FileManager: File-based storage for project and results JSON files
"""

from lsp_engine.storage.file_manager import FileManager

__all__ = [
    "FileManager",
]
