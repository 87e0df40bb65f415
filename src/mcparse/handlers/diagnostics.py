"""Convert parse diagnostics into LSP Diagnostic objects."""
from __future__ import annotations

from lsprotocol import types as lsp

from mcparse.engine import Diagnostic, WARNING

_SEVERITY = {
    WARNING: lsp.DiagnosticSeverity.Warning,
}


def to_lsp_diagnostics(diagnostics: list[Diagnostic]) -> list[lsp.Diagnostic]:
    """Return LSP ``Diagnostic`` objects for *diagnostics*, in order."""
    diags: list[lsp.Diagnostic] = []
    for d in diagnostics:
        line = max(0, d.line - 1)          # LSP is 0-based; parse positions are 1-based
        col  = max(0, d.column - 1)
        diags.append(
            lsp.Diagnostic(
                range=lsp.Range(
                    start=lsp.Position(line=line, character=col),
                    end=lsp.Position(line=line, character=col + 1),
                ),
                message=d.message,
                severity=_SEVERITY.get(d.severity, lsp.DiagnosticSeverity.Error),
                source=d.source,
            )
        )
    return diags


def group_by_uri(diagnostics: list[Diagnostic]) -> dict[str, list[Diagnostic]]:
    grouped: dict[str, list[Diagnostic]] = {}
    for d in diagnostics:
        grouped.setdefault(d.uri, []).append(d)
    return grouped
