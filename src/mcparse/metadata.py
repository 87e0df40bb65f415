"""
Symbol metadata for parsed McCode documents.

The extractor walks an ANTLR4 parse tree produced by
:class:`mcparse.engine.McCodeEngine` and collects the symbols an editor needs
for outlines and navigation: the instrument or component definition, its
parameters, the component instances of an instrument, and METADATA blocks.
Header details the grammar does not expose conveniently are filled in from
the source text.

Any part that cannot be extracted is logged and skipped; a partial result is
always returned.
"""
from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Protocol

logger = logging.getLogger(__name__)

_DEFINE_RE = re.compile(r'^\s*DEFINE\s+(INSTRUMENT|COMPONENT)\s+(\w+)', re.IGNORECASE | re.MULTILINE)
_INSTR_HEADER_RE = re.compile(r'DEFINE\s+INSTRUMENT\s+\w+\s*\(([^)]*)\)', re.IGNORECASE | re.DOTALL)
_COMP_INST_RE = re.compile(r'COMPONENT\s+(\w+)\s*=\s*(\w+)', re.IGNORECASE)


@dataclass(frozen=True)
class Symbol:
    name: str
    kind: str        # 'parameter' | 'instance'
    line: int        # 1-based
    column: int      # 1-based
    detail: str = ''


@dataclass(frozen=True)
class MetadataBlock:
    mime: str
    name: str
    start_line: int  # 1-based line of the %{ sentinel
    end_line: int    # 1-based line of the %} sentinel


@dataclass
class DocumentMetadata:
    kind: str | None = None          # 'instrument' | 'component'
    name: str | None = None
    line: int = 1
    parameters: list[Symbol] = field(default_factory=list)
    instances: list[Symbol] = field(default_factory=list)
    blocks: list[MetadataBlock] = field(default_factory=list)


class MetadataExtractor(Protocol):
    def build(self, tree: object, text: str) -> DocumentMetadata:
        ...


def _ident_text(ident) -> str:
    return ident[0].getText() if isinstance(ident, list) else ident.getText()


def _ident_symbol(ident):
    return ident[0].symbol if isinstance(ident, list) else ident.symbol


def _iter_contexts(tree, class_name: str):
    """Yield every node named *class_name* in the parse tree (depth-first)."""
    if tree is None:
        return
    if type(tree).__name__ == class_name:
        yield tree
    children = getattr(tree, 'children', None)
    if children:
        for child in children:
            yield from _iter_contexts(child, class_name)


class McCodeMetadataExtractor:
    """Build :class:`DocumentMetadata` from a McInstr or McComp parse tree."""

    def build(self, tree: object, text: str) -> DocumentMetadata:
        meta = DocumentMetadata()
        m = _DEFINE_RE.search(text)
        if m:
            meta.kind = m.group(1).lower()
            meta.name = m.group(2)
            meta.line = text.count('\n', 0, m.start(1)) + 1

        if meta.kind == 'component':
            meta.parameters = self._component_parameters(tree)
        elif meta.kind == 'instrument':
            meta.parameters = self._instrument_parameters(text)
            meta.instances = self._component_instances(tree, text)
        meta.blocks = self._metadata_blocks(tree)
        return meta

    def _component_parameters(self, tree) -> list[Symbol]:
        params: list[Symbol] = []
        try:
            ps = tree.component_definition().component_parameter_set()
            for section, detail in (
                (ps.component_define_parameters(), 'DEFINITION'),
                (ps.component_set_parameters(),    'SETTING'),
                (ps.component_out_parameters(),    'OUTPUT'),
            ):
                if section is None:
                    continue
                for p in section.component_parameters().component_parameter():
                    ident = p.Identifier()
                    tok = _ident_symbol(ident)
                    params.append(Symbol(
                        name=_ident_text(ident),
                        kind='parameter',
                        line=tok.line,
                        column=tok.column + 1,
                        detail=detail,
                    ))
        except Exception:
            logger.warning('failed to extract component parameters', exc_info=True)
        return params

    def _instrument_parameters(self, text: str) -> list[Symbol]:
        m = _INSTR_HEADER_RE.search(text)
        if m is None:
            return []
        params: list[Symbol] = []
        offset = m.start(1)
        for raw in m.group(1).split(','):
            decl = raw.split('=')[0].strip()
            if decl:
                words = decl.split()
                name = words[-1]
                pos = offset + raw.find(decl) + len(decl) - len(name)
                line_start = text.rfind('\n', 0, pos) + 1
                params.append(Symbol(
                    name=name,
                    kind='parameter',
                    line=text.count('\n', 0, pos) + 1,
                    column=pos - line_start + 1,
                    detail=' '.join(words[:-1]),
                ))
            offset += len(raw) + 1
        return params

    def _component_instances(self, tree, text: str) -> list[Symbol]:
        instances: list[Symbol] = []
        lines = text.splitlines()
        try:
            it = tree.instrument_definition().instrument_trace()
            for ci in it.component_instance():
                ct = ci.component_type()
                tok = ct.start
                comp_type = ct.getText()
                name = comp_type
                column = tok.column + 1
                if 0 < tok.line <= len(lines):
                    m = _COMP_INST_RE.search(lines[tok.line - 1])
                    if m and m.group(2) == comp_type:
                        name = m.group(1)
                        column = m.start(1) + 1
                instances.append(Symbol(
                    name=name,
                    kind='instance',
                    line=tok.line,
                    column=column,
                    detail=comp_type,
                ))
        except Exception:
            logger.warning('failed to extract component instances', exc_info=True)
        return instances

    def _metadata_blocks(self, tree) -> list[MetadataBlock]:
        blocks: list[MetadataBlock] = []
        try:
            for ctx in _iter_contexts(tree, 'MetadataContext'):
                ub = ctx.unparsed_block()
                if ub is None:
                    continue
                mime_tok = getattr(ctx, 'mime', None)
                name_tok = getattr(ctx, 'name', None)
                blocks.append(MetadataBlock(
                    mime=mime_tok.text.strip('"\'') if mime_tok else '',
                    name=name_tok.text.strip('"\'') if name_tok else '',
                    start_line=ub.start.line if ub.start else 1,
                    end_line=ub.stop.line if ub.stop else 1,
                ))
        except Exception:
            logger.warning('failed to extract METADATA blocks', exc_info=True)
        return blocks
