"""
mcparse Language Server.

Wires LSP text synchronisation to the :class:`ParseOrchestrator`:

* ``didOpen`` / ``didChange`` schedule a debounced parse,
* ``didClose`` drops the document and its diagnostics,
* ``didSave`` and ``documentSymbol`` request an immediate parse.

Diagnostics of every open document are published back to the client after
each parse or close.
"""
from __future__ import annotations

import logging

from pygls.lsp.server import LanguageServer
from pygls.uris import to_fs_path
from lsprotocol import types as lsp

from mcparse import __version__
from mcparse.config import Settings, load_settings, apply_log_level
from mcparse.document import SourceDocument
from mcparse.engine import Diagnostic, McCodeEngine
from mcparse.handlers import get_document_symbols, group_by_uri, to_lsp_diagnostics
from mcparse.metadata import McCodeMetadataExtractor
from mcparse.orchestrator import ParseOrchestrator, OrchestratorStopped

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Outbound collaborators
# ---------------------------------------------------------------------------

class LspDiagnosticsSink:
    """Publish a flat diagnostics list as per-URI ``publishDiagnostics``.

    URIs that had diagnostics last time but have none now (fixed or closed
    documents) receive an empty list so the client clears them.
    """

    def __init__(self, ls: LanguageServer):
        self._ls = ls
        self._published: set[str] = set()

    def publish(self, diagnostics: list[Diagnostic]) -> None:
        grouped = group_by_uri(diagnostics)
        stale = self._published - grouped.keys()
        for uri in sorted(stale):
            self._send(uri, [])
        for uri, diags in grouped.items():
            self._send(uri, to_lsp_diagnostics(diags))
        self._published = set(grouped)

    def _send(self, uri: str, diags: list[lsp.Diagnostic]) -> None:
        logger.debug('publishDiagnostics: %s → %d diagnostics', uri, len(diags))
        try:
            self._ls.text_document_publish_diagnostics(
                lsp.PublishDiagnosticsParams(uri=uri, diagnostics=diags)
            )
        except Exception:
            logger.debug('could not publish diagnostics for %s', uri, exc_info=True)


class LspTelemetry:
    def __init__(self, ls: LanguageServer):
        self._ls = ls

    def report(self, event: str, payload: dict) -> None:
        try:
            self._ls.protocol.notify(lsp.TELEMETRY_EVENT, {
                'eventName': event,
                'properties': payload,
                'measurements': {},
            })
        except Exception:
            logger.debug('telemetry event %s not sent', event, exc_info=True)


# ---------------------------------------------------------------------------
# Server instance + per-session state
# ---------------------------------------------------------------------------

server = LanguageServer(
    'mcparse', __version__,
    text_document_sync_kind=lsp.TextDocumentSyncKind.Full,
)

# Created on initialize, once the workspace root and client options are known.
_orchestrator: ParseOrchestrator | None = None

# Overrides from the command line; applied after project and client settings.
_cli_options: dict = {}


def configure(options: dict) -> None:
    """Record command-line overrides (called by :mod:`mcparse.cli`)."""
    _cli_options.clear()
    _cli_options.update({k: v for k, v in options.items() if v is not None})


def create_orchestrator(ls: LanguageServer, settings: Settings) -> ParseOrchestrator:
    return ParseOrchestrator(
        engine=McCodeEngine(strict=settings.strict),
        extractor=McCodeMetadataExtractor(),
        sink=LspDiagnosticsSink(ls),
        telemetry=LspTelemetry(ls),
        settings=settings,
    )


def _workspace_root(params: lsp.InitializeParams) -> str | None:
    uri = params.root_uri
    if not uri:
        return None
    # Decodes percent-escapes, e.g. a space in the root directory name
    return to_fs_path(uri) or uri


def _source_document(uri: str) -> SourceDocument:
    doc = server.workspace.get_text_document(uri)
    return SourceDocument(text=doc.source, version=doc.version or 0)


# ---------------------------------------------------------------------------
# Lifecycle
# ---------------------------------------------------------------------------

@server.feature(lsp.INITIALIZE)
def on_initialize(params: lsp.InitializeParams):
    global _orchestrator
    opts = getattr(params, 'initialization_options', None)
    settings = load_settings(
        _workspace_root(params),
        opts if isinstance(opts, dict) else None,
    ).merged(_cli_options)
    apply_log_level(settings.log_level)
    logger.info('mcparse %s: debounce %.0f ms, suffixes %s',
                __version__, settings.debounce_delay * 1000, ', '.join(settings.suffixes))

    if _orchestrator is not None:
        _orchestrator.stop()
    _orchestrator = create_orchestrator(server, settings)


@server.feature(lsp.SHUTDOWN)
def on_shutdown(params):
    if _orchestrator is not None:
        _orchestrator.stop()


@server.feature(lsp.WORKSPACE_DID_CHANGE_CONFIGURATION)
def did_change_configuration(params: lsp.DidChangeConfigurationParams):
    """Handle live config changes (only the log level can change at runtime)."""
    settings = getattr(params, 'settings', None) or {}
    if isinstance(settings, dict):
        apply_log_level(settings.get('mcparse', {}).get('logLevel'))


# ---------------------------------------------------------------------------
# Text document synchronisation
# ---------------------------------------------------------------------------

@server.feature(lsp.TEXT_DOCUMENT_DID_OPEN)
def did_open(params: lsp.DidOpenTextDocumentParams):
    if _orchestrator is None:
        return
    td = params.text_document
    _orchestrator.notify_edit(td.uri, SourceDocument(text=td.text, version=td.version))


@server.feature(lsp.TEXT_DOCUMENT_DID_CHANGE)
def did_change(params: lsp.DidChangeTextDocumentParams):
    if _orchestrator is None:
        return
    td = params.text_document
    source = params.content_changes[-1].text
    _orchestrator.notify_edit(td.uri, SourceDocument(text=source, version=td.version))


@server.feature(lsp.TEXT_DOCUMENT_DID_CLOSE)
def did_close(params: lsp.DidCloseTextDocumentParams):
    if _orchestrator is None:
        return
    _orchestrator.notify_closed(params.text_document.uri)


@server.feature(lsp.TEXT_DOCUMENT_DID_SAVE)
@server.thread()
def did_save(params: lsp.DidSaveTextDocumentParams):
    """Bring diagnostics up to date for the saved text without waiting for the debounce."""
    if _orchestrator is None:
        return
    uri = params.text_document.uri
    try:
        _orchestrator.parse_immediate(uri, _source_document(uri))
    except OrchestratorStopped:
        logger.debug('didSave for %s after shutdown', uri)


# ---------------------------------------------------------------------------
# Document symbols
# ---------------------------------------------------------------------------

@server.feature(lsp.TEXT_DOCUMENT_DOCUMENT_SYMBOL)
@server.thread()
def document_symbol(params: lsp.DocumentSymbolParams) -> list[lsp.DocumentSymbol] | None:
    if _orchestrator is None:
        return None
    uri = params.text_document.uri
    try:
        context = _orchestrator.parse_immediate(uri, _source_document(uri))
    except OrchestratorStopped:
        logger.debug('documentSymbol for %s after shutdown', uri)
        return None
    return get_document_symbols(context)
