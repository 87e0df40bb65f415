"""
Parsing engine seam.

An engine turns source text into a parse tree.  It reports problems in one of
two ways: by raising :class:`ParseSyntaxError` for an expected, user-caused
syntax error, or by raising anything else when the parser itself breaks.
:func:`run_engine` folds both into a tagged outcome so callers never have to
handle exceptions from the engine.

:class:`McCodeEngine` is the ANTLR4-backed engine for McCode instrument
(``.instr``) and component (``.comp``) sources.
"""
from __future__ import annotations

import traceback
from dataclasses import dataclass, field
from typing import Protocol, Sequence, Union

from antlr4 import CommonTokenStream, InputStream
from antlr4.error.ErrorListener import ErrorListener

SOURCE_NAME = 'mcparse'

ERROR = 'error'
WARNING = 'warning'


@dataclass(frozen=True)
class ParseError:
    line: int        # 1-based
    column: int      # 1-based
    message: str
    severity: str = ERROR


@dataclass(frozen=True)
class Diagnostic:
    uri: str
    file: str
    line: int        # 1-based
    column: int      # 1-based
    message: str
    severity: str = ERROR
    source: str = SOURCE_NAME


class ParseSyntaxError(Exception):
    """A syntax error at a known position in the source."""

    def __init__(self, line: int, column: int, message: str,
                 warnings: Sequence[ParseError] = ()):
        super().__init__(message)
        self.line = line
        self.column = column
        self.message = message
        self.warnings = list(warnings)


class ParseEngine(Protocol):
    def parse(self, text: str, path: str, is_template: bool) -> tuple[object, list[ParseError]]:
        ...


@dataclass(frozen=True)
class Parsed:
    tree: object
    warnings: list[ParseError] = field(default_factory=list)


@dataclass(frozen=True)
class SyntaxFailure:
    line: int
    column: int
    message: str
    warnings: list[ParseError] = field(default_factory=list)


@dataclass(frozen=True)
class InternalFailure:
    message: str
    detail: str      # formatted traceback


ParseOutcome = Union[Parsed, SyntaxFailure, InternalFailure]


def run_engine(engine: ParseEngine, text: str, path: str, is_template: bool) -> ParseOutcome:
    """Call *engine* and classify the result."""
    try:
        tree, warnings = engine.parse(text, path, is_template)
    except ParseSyntaxError as e:
        return SyntaxFailure(e.line, e.column, e.message, list(e.warnings))
    except Exception as e:
        message = str(e) or type(e).__name__
        return InternalFailure(message, traceback.format_exc())
    return Parsed(tree, list(warnings))


# ---------------------------------------------------------------------------
# McCode engine
# ---------------------------------------------------------------------------

class _CollectingErrorListener(ErrorListener):
    def __init__(self):
        super().__init__()
        self.errors: list[ParseError] = []

    def syntaxError(self, recognizer, offending_symbol, line, column, msg, e):
        # ANTLR4 columns are 0-based
        self.errors.append(ParseError(line=line, column=column + 1, message=msg))


class McCodeEngine:
    """Parse McCode sources with the ``mccode-antlr`` grammars.

    Components are templates that instruments instantiate, so
    ``is_template=True`` selects the McComp grammar and ``False`` the McInstr
    grammar.

    With ``strict=True`` any syntax error rejects the whole document: the
    first error is raised as :class:`ParseSyntaxError` and no tree is kept.
    With ``strict=False`` ANTLR's recovered tree is returned and every error
    is reported alongside it.
    """

    def __init__(self, strict: bool = True):
        self.strict = strict

    def parse(self, text: str, path: str, is_template: bool) -> tuple[object, list[ParseError]]:
        if is_template:
            from mccode_antlr.grammar.McCompLexer import McCompLexer
            from mccode_antlr.grammar.McCompParser import McCompParser
            LexerCls, ParserCls = McCompLexer, McCompParser
        else:
            from mccode_antlr.grammar.McInstrLexer import McInstrLexer
            from mccode_antlr.grammar.McInstrParser import McInstrParser
            LexerCls, ParserCls = McInstrLexer, McInstrParser

        listener = _CollectingErrorListener()
        lexer = LexerCls(InputStream(text))
        lexer.removeErrorListeners()
        lexer.addErrorListener(listener)

        parser = ParserCls(CommonTokenStream(lexer))
        parser.removeErrorListeners()
        parser.addErrorListener(listener)

        tree = parser.prog()

        if listener.errors and self.strict:
            first = listener.errors[0]
            raise ParseSyntaxError(first.line, first.column, first.message)
        return tree, listener.errors
