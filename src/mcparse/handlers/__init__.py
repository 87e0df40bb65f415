"""handlers/__init__.py: re-export handler functions for convenience."""
from .diagnostics import to_lsp_diagnostics, group_by_uri
from .symbols import get_document_symbols

__all__ = ['to_lsp_diagnostics', 'group_by_uri', 'get_document_symbols']
