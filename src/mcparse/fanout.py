"""Publish the diagnostics of every tracked document as one flat list."""
from __future__ import annotations

import logging
from typing import Protocol

from mcparse.document import DocumentStore
from mcparse.engine import Diagnostic

logger = logging.getLogger(__name__)


class DiagnosticsSink(Protocol):
    def publish(self, diagnostics: list[Diagnostic]) -> None:
        ...


def flatten(store: DocumentStore) -> list[Diagnostic]:
    """Concatenate each document's diagnostics, keeping per-document order."""
    diagnostics: list[Diagnostic] = []
    for context in store:
        diagnostics.extend(context.diagnostics)
    return diagnostics


class NotificationFanout:
    def __init__(self, sink: DiagnosticsSink):
        self.sink = sink

    def publish(self, store: DocumentStore) -> None:
        diagnostics = flatten(store)
        logger.debug('publishing %d diagnostics for %d documents', len(diagnostics), len(store))
        self.sink.publish(diagnostics)
