"""
Per-document parse cache.

Each tracked document is stored as a :class:`Context` holding the latest
snapshot received from the editor together with the tree, diagnostics and
metadata of the most recent parse attempt.  ``parsed_version`` records which
snapshot version the cached results belong to, so a request for an already
parsed version can be answered without parsing again.

The store is a plain keyed container.  It is only ever touched from the
orchestrator's single executor thread and is therefore not synchronised.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Iterator

from pygls.uris import to_fs_path

if TYPE_CHECKING:
    from mcparse.engine import Diagnostic
    from mcparse.metadata import DocumentMetadata


@dataclass(frozen=True)
class SourceDocument:
    text: str
    version: int


@dataclass
class Context:
    document: SourceDocument
    path: str
    tree: object | None = None             # None until parsed, or on a failed parse
    diagnostics: list[Diagnostic] = field(default_factory=list)
    metadata: DocumentMetadata | None = None
    parsed_version: int | None = None


def derive_path(uri: str) -> str:
    """Return the path handed to the parser for *uri*.

    ``file:`` URIs map to their filesystem path.  Anything else (untitled
    buffers, virtual documents) gets a ``nofile.<ext>`` placeholder built from
    the last dot-delimited segment of the URI, so the parser always receives
    a file name with the right extension.
    """
    if uri.startswith('file:'):
        path = to_fs_path(uri)
        if path:
            return path
    extension = uri.split('.')[-1]
    return f'nofile.{extension}'


def is_supported(uri: str, suffixes: tuple[str, ...]) -> bool:
    return uri.endswith(tuple(suffixes))


class DocumentStore:
    """Mapping from document URI to its :class:`Context`."""

    def __init__(self):
        self._contexts: dict[str, Context] = {}

    def get(self, uri: str) -> Context | None:
        return self._contexts.get(uri)

    def put(self, uri: str, context: Context) -> None:
        self._contexts[uri] = context

    def delete(self, uri: str) -> None:
        self._contexts.pop(uri, None)

    def __contains__(self, uri: str) -> bool:
        return uri in self._contexts

    def __iter__(self) -> Iterator[Context]:
        return iter(list(self._contexts.values()))

    def __len__(self) -> int:
        return len(self._contexts)
