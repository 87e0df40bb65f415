"""
Document symbol handler.

Turns the cached :class:`~mcparse.metadata.DocumentMetadata` of a parsed
document into an LSP outline: one top-level symbol for the instrument or
component definition, with its parameters, component instances and METADATA
blocks as children.
"""
from __future__ import annotations

from typing import TYPE_CHECKING

from lsprotocol import types as lsp

if TYPE_CHECKING:
    from mcparse.document import Context
    from mcparse.metadata import Symbol

_KINDS = {
    'parameter': lsp.SymbolKind.Field,
    'instance': lsp.SymbolKind.Object,
}


def _point(line: int, column: int, length: int) -> lsp.Range:
    line = max(0, line - 1)
    col = max(0, column - 1)
    return lsp.Range(
        start=lsp.Position(line=line, character=col),
        end=lsp.Position(line=line, character=col + length),
    )


def _symbol(sym: Symbol) -> lsp.DocumentSymbol:
    rng = _point(sym.line, sym.column, len(sym.name))
    return lsp.DocumentSymbol(
        name=sym.name,
        kind=_KINDS.get(sym.kind, lsp.SymbolKind.Variable),
        range=rng,
        selection_range=rng,
        detail=sym.detail or None,
    )


def get_document_symbols(context: Context) -> list[lsp.DocumentSymbol]:
    """Return the outline for *context*, or ``[]`` if it has no metadata."""
    meta = context.metadata
    if meta is None or meta.name is None:
        return []

    children = [_symbol(p) for p in meta.parameters]
    children.extend(_symbol(i) for i in meta.instances)
    for block in meta.blocks:
        rng = lsp.Range(
            start=lsp.Position(line=max(0, block.start_line - 1), character=0),
            end=lsp.Position(line=max(0, block.end_line - 1), character=0),
        )
        children.append(lsp.DocumentSymbol(
            name=block.name or 'METADATA',
            kind=lsp.SymbolKind.Namespace,
            range=rng,
            selection_range=lsp.Range(start=rng.start, end=rng.start),
            detail=block.mime or None,
        ))

    lines = context.document.text.split('\n')
    return [lsp.DocumentSymbol(
        name=meta.name,
        kind=lsp.SymbolKind.Class if meta.kind == 'component' else lsp.SymbolKind.Module,
        range=lsp.Range(
            start=lsp.Position(line=0, character=0),
            end=lsp.Position(line=len(lines) - 1, character=len(lines[-1])),
        ),
        selection_range=_point(meta.line, 1, 0),
        detail=meta.kind,
        children=children,
    )]
