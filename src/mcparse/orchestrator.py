"""
Parse orchestrator.

All state changes go through one executor thread, in arrival order:

* ``notify_edit``   – store the new snapshot and (re)arm the debounce timer.
* ``notify_closed`` – cancel the timer, forget the document, republish.
* timer fire        – parse the latest snapshot, republish.
* ``parse_immediate`` – cancel the timer and parse now, unless the requested
  version is already cached; the caller blocks until the result is ready.

Because nothing else touches the document store or the scheduler, neither
needs locking, and a close is always processed before any later timer event
for the same document.  An immediate parse occupies the executor for the
duration of the parse, which delays other documents' events; immediate
requests are rare (save, symbol requests) and must see the latest text.

An immediate request always cancels the pending timer, even when it names
an older version than a queued edit.  If that older version is cached, the
cached results come back and the newer text stays unparsed until the next
edit or immediate request.

Parse failures never escape: they become diagnostics on the document.
"""
from __future__ import annotations

import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import replace
from typing import Protocol

from mcparse.config import Settings
from mcparse.debounce import DebounceScheduler, TimerHandle
from mcparse.document import Context, DocumentStore, SourceDocument, derive_path, is_supported
from mcparse.engine import (
    Diagnostic, InternalFailure, Parsed, ParseEngine, ParseError, SyntaxFailure,
    SOURCE_NAME, ERROR, run_engine,
)
from mcparse.fanout import DiagnosticsSink, NotificationFanout
from mcparse.metadata import MetadataExtractor

logger = logging.getLogger(__name__)


class Telemetry(Protocol):
    def report(self, event: str, payload: dict) -> None:
        ...


class OrchestratorStopped(RuntimeError):
    pass


class ParseOrchestrator:
    def __init__(
        self,
        engine: ParseEngine,
        extractor: MetadataExtractor,
        sink: DiagnosticsSink,
        telemetry: Telemetry | None = None,
        settings: Settings | None = None,
        timer_factory=threading.Timer,
    ):
        self.settings = settings or Settings()
        self.engine = engine
        self.extractor = extractor
        self.telemetry = telemetry
        self.store = DocumentStore()
        self.fanout = NotificationFanout(sink)
        self.scheduler = DebounceScheduler(self.settings.debounce_delay, timer_factory)
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix='mcparse-orchestrator')
        self._stopped = False

    # ------------------------------------------------------------------
    # Public entry points (any thread)
    # ------------------------------------------------------------------

    def notify_edit(self, uri: str, document: SourceDocument) -> None:
        self._post(self._handle_edit, uri, document)

    def notify_closed(self, uri: str) -> None:
        self._post(self._handle_closed, uri)

    def parse_immediate(self, uri: str, document: SourceDocument,
                        timeout: float | None = None) -> Context:
        """Parse *document* now and return its context.

        Blocks until the orchestrator has processed every earlier event and
        this request.  Must not be called from the orchestrator thread itself
        (e.g. from inside a diagnostics sink), as that would deadlock.
        """
        return self._submit(self._handle_immediate, uri, document).result(timeout)

    def flush(self, timeout: float | None = None) -> None:
        """Wait until every event queued so far has been processed."""
        self._submit(lambda: None).result(timeout)

    def stop(self) -> None:
        if self._stopped:
            return
        try:
            self._submit(self.scheduler.cancel_all).result()
        except OrchestratorStopped:
            pass
        self._stopped = True
        self._executor.shutdown(wait=True)

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.stop()

    # ------------------------------------------------------------------
    # Queueing
    # ------------------------------------------------------------------

    def _submit(self, fn, *args) -> Future:
        if self._stopped:
            raise OrchestratorStopped('parse orchestrator has been stopped')
        try:
            return self._executor.submit(fn, *args)
        except RuntimeError as e:
            raise OrchestratorStopped(str(e)) from e

    def _post(self, fn, *args) -> None:
        self._submit(fn, *args).add_done_callback(_log_failure)

    def _on_timer(self, handle: TimerHandle) -> None:
        # Runs on the timer thread: enqueue only.
        try:
            self._post(self._handle_timer, handle)
        except OrchestratorStopped:
            logger.debug('dropping timer for %s: orchestrator stopped', handle.uri)

    # ------------------------------------------------------------------
    # Event handlers (executor thread only)
    # ------------------------------------------------------------------

    def _supported(self, uri: str) -> bool:
        return is_supported(uri, self.settings.suffixes)

    def _handle_edit(self, uri: str, document: SourceDocument) -> None:
        if not self._supported(uri):
            logger.debug('Not parsing %s with debounce', uri)
            return
        self.scheduler.arm(uri, self._on_timer)
        context = self.store.get(uri)
        if context is None:
            self.store.put(uri, Context(document=document, path=derive_path(uri)))
        else:
            self.store.put(uri, replace(context, document=document))

    def _handle_closed(self, uri: str) -> None:
        self.scheduler.cancel(uri)
        self.store.delete(uri)
        self.fanout.publish(self.store)

    def _handle_timer(self, handle: TimerHandle) -> None:
        uri = handle.uri
        if not self.scheduler.is_current(uri, handle):
            logger.debug('Ignoring stale timer for %s', uri)
            return
        self.scheduler.release(uri, handle)
        context = self.store.get(uri)
        if context is None:
            logger.debug('Ignoring timer for closed document %s', uri)
            return
        logger.debug('Parsing %s after debounce', uri)
        self.store.put(uri, self._parse(uri, context))
        self.fanout.publish(self.store)

    def _handle_immediate(self, uri: str, document: SourceDocument) -> Context:
        if not self._supported(uri):
            logger.debug('Not parsing %s immediately', uri)
            return Context(document=document, path=derive_path(uri))

        self.scheduler.cancel(uri)
        context = self.store.get(uri)
        if context is not None and context.parsed_version == document.version:
            logger.debug('%s already parsed', uri)
            return context

        logger.debug('Parsing %s immediately', uri)
        context = self._parse(uri, Context(document=document, path=derive_path(uri)))
        self.store.put(uri, context)
        self.fanout.publish(self.store)
        return context

    # ------------------------------------------------------------------
    # Parse pipeline
    # ------------------------------------------------------------------

    def _parse(self, uri: str, context: Context) -> Context:
        document, path = context.document, context.path
        is_template = path.endswith(tuple(self.settings.template_suffixes))
        outcome = run_engine(self.engine, document.text, path, is_template)

        tree = None
        metadata = None
        if isinstance(outcome, Parsed):
            tree = outcome.tree
            diagnostics = [_diagnostic(uri, path, w) for w in outcome.warnings]
            try:
                metadata = self.extractor.build(tree, document.text)
            except Exception:
                logger.warning('metadata extraction failed for %s', uri, exc_info=True)
        elif isinstance(outcome, SyntaxFailure):
            failure = ParseError(outcome.line, outcome.column, outcome.message, ERROR)
            diagnostics = [_diagnostic(uri, path, failure)]
            diagnostics.extend(_diagnostic(uri, path, w) for w in outcome.warnings)
        else:
            diagnostics = [_diagnostic(uri, path, ParseError(1, 1, outcome.message, ERROR))]
            self._report_internal_failure(outcome)

        return replace(
            context,
            tree=tree,
            diagnostics=diagnostics,
            metadata=metadata,
            parsed_version=document.version,
        )

    def _report_internal_failure(self, outcome: InternalFailure) -> None:
        logger.warning(
            'Unexpected parser error, please report it to the mccode-antlr project '
            'https://github.com/McStasMcXtrace/mccode-antlr/issues\n%s', outcome.detail,
        )
        if self.telemetry is None:
            return
        try:
            self.telemetry.report('parser_error', {f'{SOURCE_NAME}.parser_error': outcome.detail})
        except Exception:
            logger.debug('telemetry report failed', exc_info=True)


def _diagnostic(uri: str, path: str, error: ParseError) -> Diagnostic:
    return Diagnostic(
        uri=uri,
        file=path,
        line=error.line,
        column=error.column,
        message=error.message,
        severity=error.severity,
    )


def _log_failure(future: Future) -> None:
    if future.cancelled():
        return
    exc = future.exception()
    if exc is not None:
        logger.error('parse orchestrator event failed', exc_info=exc)
