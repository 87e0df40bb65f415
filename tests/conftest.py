"""Shared fakes for the orchestrator tests."""
from __future__ import annotations

import re

import pytest

from mcparse.config import Settings
from mcparse.engine import ParseError, ParseSyntaxError, WARNING
from mcparse.orchestrator import ParseOrchestrator

_BLOCK_RE = re.compile(r'\b(do|end)\b')


class ManualTimer:
    """Stand-in for ``threading.Timer`` that only fires when told to."""

    def __init__(self, interval, function, args=None, kwargs=None):
        self.interval = interval
        self.function = function
        self.args = tuple(args or ())
        self.daemon = False
        self.started = False
        self.cancelled = False
        self.fired = False

    def start(self):
        self.started = True

    def cancel(self):
        self.cancelled = True

    def fire(self):
        if self.started and not self.cancelled and not self.fired:
            self.fired = True
            self.function(*self.args)


class ManualTimers:
    def __init__(self):
        self.timers: list[ManualTimer] = []

    def __call__(self, interval, function, args=None, kwargs=None):
        timer = ManualTimer(interval, function, args, kwargs)
        self.timers.append(timer)
        return timer

    def live(self) -> list[ManualTimer]:
        return [t for t in self.timers if t.started and not t.cancelled and not t.fired]

    def fire_pending(self) -> None:
        for timer in list(self.timers):
            timer.fire()


class BlockEngine:
    """Tiny engine for ``do ... end`` sources.

    An unbalanced source raises ``ParseSyntaxError`` at the end of the text,
    ``boom`` anywhere raises an unexpected error, and every ``# warn`` line
    produces a non-fatal warning.
    """

    def __init__(self):
        self.calls: list[tuple[str, str, bool]] = []

    def parse(self, text, path, is_template):
        self.calls.append((text, path, is_template))
        if 'boom' in text:
            raise RuntimeError('tokenizer crashed')
        warnings = [
            ParseError(line=n, column=1, message='suspicious line', severity=WARNING)
            for n, line in enumerate(text.splitlines(), start=1)
            if line.startswith('# warn')
        ]
        depth = 0
        for m in _BLOCK_RE.finditer(text):
            depth += 1 if m.group(1) == 'do' else -1
        if depth != 0:
            lines = text.split('\n')
            raise ParseSyntaxError(len(lines), len(lines[-1]) + 1,
                                   'missing terminator: end', warnings=warnings)
        return ('tree', text), warnings


class RecordingExtractor:
    def __init__(self):
        self.calls = []

    def build(self, tree, text):
        self.calls.append(tree)
        return {'symbols': text.split()}


class RecordingSink:
    def __init__(self):
        self.published: list[list] = []

    def publish(self, diagnostics):
        self.published.append(list(diagnostics))

    @property
    def last(self):
        return self.published[-1]


class RecordingTelemetry:
    def __init__(self):
        self.events: list[tuple[str, dict]] = []

    def report(self, event, payload):
        self.events.append((event, payload))


ELIXIR_SETTINGS = Settings(
    suffixes=('.ex', '.exs', '.eex'),
    template_suffixes=('.eex',),
)


@pytest.fixture
def timers():
    return ManualTimers()


@pytest.fixture
def engine():
    return BlockEngine()


@pytest.fixture
def extractor():
    return RecordingExtractor()


@pytest.fixture
def sink():
    return RecordingSink()


@pytest.fixture
def telemetry():
    return RecordingTelemetry()


@pytest.fixture
def orchestrator(engine, extractor, sink, telemetry, timers):
    orch = ParseOrchestrator(
        engine=engine,
        extractor=extractor,
        sink=sink,
        telemetry=telemetry,
        settings=ELIXIR_SETTINGS,
        timer_factory=timers,
    )
    yield orch
    orch.stop()
