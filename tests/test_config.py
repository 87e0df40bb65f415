"""Tests for mcparse.config: layered settings."""
from __future__ import annotations

import logging

import pytest

from mcparse.config import Settings, apply_log_level, load_settings, read_project_config


class TestSettings:
    def test_defaults(self):
        s = Settings()
        assert s.debounce_delay == pytest.approx(0.3)
        assert s.suffixes == ('.instr', '.comp')
        assert s.template_suffixes == ('.comp',)
        assert s.strict is True

    def test_merged_camel_case(self):
        s = Settings().merged({'debounceMs': 500, 'strict': False, 'templateSuffixes': ['comp']})
        assert s.debounce_delay == pytest.approx(0.5)
        assert s.strict is False
        assert s.template_suffixes == ('.comp',)

    def test_merged_snake_case(self):
        s = Settings().merged({'debounce_ms': 0, 'log_level': 'debug'})
        assert s.debounce_delay == 0
        assert s.log_level == 'DEBUG'

    def test_invalid_values_are_ignored(self, caplog):
        with caplog.at_level(logging.WARNING, logger='mcparse.config'):
            s = Settings().merged({'debounceMs': -5, 'strict': 'yes', 'suffixes': '.instr',
                                   'logLevel': 'loud'})
        assert s == Settings()
        assert len(caplog.records) == 4

    def test_none_and_empty_are_noops(self):
        assert Settings().merged(None) == Settings()
        assert Settings().merged({'debounceMs': None}) == Settings()


class TestProjectConfig:
    def test_missing_root_or_file(self, tmp_path):
        assert read_project_config(None) == {}
        assert read_project_config(str(tmp_path)) == {}

    def test_reads_toml(self, tmp_path):
        (tmp_path / '.mcparse.toml').write_text('debounce_ms = 750\nsuffixes = [".instr"]\n')
        s = load_settings(str(tmp_path))
        assert s.debounce_delay == pytest.approx(0.75)
        assert s.suffixes == ('.instr',)

    def test_broken_toml_is_ignored(self, tmp_path, caplog):
        (tmp_path / '.mcparse.toml').write_text('debounce_ms = = 1\n')
        with caplog.at_level(logging.WARNING, logger='mcparse.config'):
            assert load_settings(str(tmp_path)) == Settings()
        assert caplog.records

    def test_client_options_override_project_file(self, tmp_path):
        (tmp_path / '.mcparse.toml').write_text('debounce_ms = 750\nstrict = false\n')
        s = load_settings(str(tmp_path), {'debounceMs': 100})
        assert s.debounce_delay == pytest.approx(0.1)
        assert s.strict is False


class TestApplyLogLevel:
    def test_sets_root_level(self):
        root = logging.getLogger()
        before = root.level
        try:
            apply_log_level('debug')
            assert root.level == logging.DEBUG
            apply_log_level('nonsense')
            assert root.level == logging.DEBUG
            apply_log_level(None)
            assert root.level == logging.DEBUG
        finally:
            root.setLevel(before)
