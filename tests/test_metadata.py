"""Tests for mcparse.metadata: symbols extracted from McCode parse trees."""
from __future__ import annotations

import logging

from mcparse.engine import McCodeEngine
from mcparse.metadata import McCodeMetadataExtractor

VALID_INSTR = """\
DEFINE INSTRUMENT TestInstr(double L = 1.0, int n = 100)
DECLARE
%{
  double x;
%}
TRACE
COMPONENT Origin = Progress_bar()
AT (0, 0, 0) ABSOLUTE
END
"""

VALID_COMP = """\
DEFINE COMPONENT TestComp
DEFINITION PARAMETERS (int n)
SETTING PARAMETERS (double x = 0.0)
OUTPUT PARAMETERS ()
TRACE
%{
%}
END
"""


def _build(source: str, is_template: bool):
    tree, _ = McCodeEngine().parse(source, 'test', is_template)
    return McCodeMetadataExtractor().build(tree, source)


class TestInstrumentMetadata:
    def test_definition(self):
        meta = _build(VALID_INSTR, False)
        assert meta.kind == 'instrument'
        assert meta.name == 'TestInstr'
        assert meta.line == 1

    def test_parameters_from_header(self):
        meta = _build(VALID_INSTR, False)
        assert [(p.name, p.detail) for p in meta.parameters] == [('L', 'double'), ('n', 'int')]
        first_line = VALID_INSTR.splitlines()[0]
        for p in meta.parameters:
            assert p.line == 1
            assert first_line[p.column - 1:p.column - 1 + len(p.name)] == p.name

    def test_component_instances(self):
        meta = _build(VALID_INSTR, False)
        assert len(meta.instances) == 1
        inst = meta.instances[0]
        assert inst.name == 'Origin'
        assert inst.detail == 'Progress_bar'
        assert inst.line == 7
        assert inst.column == len('COMPONENT ') + 1


class TestComponentMetadata:
    def test_definition_and_parameters(self):
        meta = _build(VALID_COMP, True)
        assert meta.kind == 'component'
        assert meta.name == 'TestComp'
        assert meta.instances == []
        names = {p.name: p.detail for p in meta.parameters}
        assert names == {'n': 'DEFINITION', 'x': 'SETTING'}

    def test_parameter_positions(self):
        meta = _build(VALID_COMP, True)
        by_name = {p.name: p for p in meta.parameters}
        assert by_name['n'].line == 2
        assert by_name['x'].line == 3


class TestRobustness:
    def test_unexpected_tree_gives_partial_metadata(self, caplog):
        with caplog.at_level(logging.WARNING, logger='mcparse.metadata'):
            meta = McCodeMetadataExtractor().build(object(), VALID_INSTR)
        assert meta.name == 'TestInstr'
        assert len(meta.parameters) == 2
        assert meta.instances == []
        assert meta.blocks == []
        assert any('component instances' in r.getMessage() for r in caplog.records)

    def test_source_without_definition(self):
        meta = McCodeMetadataExtractor().build(object(), '/* nothing yet */')
        assert meta.kind is None
        assert meta.name is None
        assert meta.parameters == []
