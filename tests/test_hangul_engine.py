#!/usr/bin/env python3
# tests/test_hangul_engine.py - Unit tests for hangul_engine.py

import os
import sys

import pytest

# Add src directory to path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))

import keys
from keys import Key
from hangul_engine import (
    DEFAULT_CONFIG, HangulConfig, HangulEngine, HanjaTableError, load_engine,
)
from hanja import Hanja, HanjaTable
from test_hangul_state import FakeInputContext


@pytest.fixture
def table():
    return HanjaTable([Hanja('한', '韓', ''), Hanja('ㄱ', '가', '')])


class TestHangulConfig:
    """Test suite for HangulConfig"""

    def test_defaults(self):
        config = HangulConfig()
        assert config.keyboard == '2'
        assert config.auto_reorder is True
        assert config.word_commit is False
        assert config.hanja_mode is False
        assert config.page_size == 10
        assert [k.sym for k in config.hanja_mode_toggle_keys] == [keys.KEY_Hangul_Hanja, keys.KEY_F1 + 8]

    def test_from_dict_ignores_other_keys(self):
        config = HangulConfig.from_dict({'keyboard': '39', 'logging_level': 'DEBUG'})
        assert config.keyboard == '39'
        assert 'logging_level' not in config.to_dict()

    def test_to_dict_keeps_key_names(self):
        assert HangulConfig().to_dict() == DEFAULT_CONFIG

    def test_immutable(self):
        config = HangulConfig()
        with pytest.raises(AttributeError):
            config.hanja_mode = True

    def test_replace(self):
        config = HangulConfig()
        changed = config.replace(hanja_mode=True)
        assert changed.hanja_mode is True
        assert config.hanja_mode is False
        assert changed != config

    def test_equality(self):
        assert HangulConfig(keyboard='39') == HangulConfig.from_dict({'keyboard': '39'})

    def test_functional_key_states(self):
        config = HangulConfig(hanja_mode_toggle_keys=['Control+space'])
        states = config.functional_key_states()
        assert states & keys.CONTROL_MASK
        assert states & keys.SHIFT_MASK
        assert not states & keys.ALT_MASK

    def test_invalid_key_names_are_dropped(self):
        config = HangulConfig(next_page_keys=['Down', 'Nonsense'])
        assert len(config.next_page_keys) == 1


class TestHangulEngine:
    """Test suite for HangulEngine"""

    def test_missing_table_is_fatal(self):
        with pytest.raises(HanjaTableError):
            HangulEngine(HangulConfig(), None)

    def test_session_created_on_first_event(self, table):
        engine = HangulEngine(HangulConfig(), table)
        ic = FakeInputContext()
        assert not engine.has_state('a')
        engine.key_event('a', ic, Key(ord('g')))
        assert engine.has_state('a')
        assert len(engine) == 1

    def test_sessions_are_independent(self, table):
        engine = HangulEngine(HangulConfig(), table)
        ic_a, ic_b = FakeInputContext(), FakeInputContext()
        engine.key_event('a', ic_a, Key(ord('g')))
        engine.key_event('b', ic_b, Key(ord('k')))
        assert engine.state('a', ic_a).composer.preedit_string() == 'ㅎ'
        assert engine.state('b', ic_b).composer.preedit_string() == 'ㅏ'

    def test_release(self, table):
        engine = HangulEngine(HangulConfig(), table)
        ic = FakeInputContext()
        engine.key_event('a', ic, Key(ord('g')))
        engine.release('a')
        assert not engine.has_state('a')
        engine.release('a')
        assert len(engine) == 0

    def test_keyboard_change_reconfigures_sessions(self, table):
        engine = HangulEngine(HangulConfig(), table)
        ic = FakeInputContext()
        state = engine.state('a', ic)
        engine.set_config(engine.config.replace(keyboard='39'))
        assert state.composer.keyboard.id == '39'

    def test_romaja_keyboard(self, table):
        engine = HangulEngine(HangulConfig(keyboard='ro'), table)
        ic = FakeInputContext()
        for c in 'han':
            engine.key_event('a', ic, Key(ord(c)))
        assert ic.preedit.composing_text == '한'

    def test_toggle_hanja_mode(self, table):
        engine = HangulEngine(HangulConfig(), table)
        assert engine.toggle_hanja_mode() is True
        assert engine.config.hanja_mode is True
        assert engine.toggle_hanja_mode() is False

    def test_symbol_table_is_consulted_first(self, table):
        symbol_table = HanjaTable([Hanja('한', '★', '')])
        engine = HangulEngine(HangulConfig(hanja_mode=True), table, symbol_table)
        ic = FakeInputContext()
        for c in 'gks':
            engine.key_event('a', ic, Key(ord(c)))
        assert ic.candidate_texts() == ['★']

    def test_select_candidate(self, table):
        engine = HangulEngine(HangulConfig(hanja_mode=True), table)
        ic = FakeInputContext()
        for c in 'gks':
            engine.key_event('a', ic, Key(ord(c)))
        assert engine.select_candidate('a', ic, 3) is False
        assert engine.select_candidate('a', ic, 0) is True
        assert ic.commits == ['韓']

    def test_navigate(self, table):
        engine = HangulEngine(HangulConfig(), table)
        ic = FakeInputContext()
        assert engine.navigate('a', ic, 'next_candidate') is False

    def test_focus_out_flushes(self, table):
        engine = HangulEngine(HangulConfig(), table)
        ic = FakeInputContext()
        engine.key_event('a', ic, Key(ord('g')))
        engine.focus_out('a', ic)
        assert ic.commits == ['ㅎ']


class TestLoadEngine:
    """Test suite for load_engine()"""

    def test_missing_hanja_table(self, tmp_path):
        with pytest.raises(HanjaTableError):
            load_engine(HangulConfig(), str(tmp_path / 'missing.txt'))

    def test_tables_loaded(self, tmp_path):
        hanja_path = tmp_path / 'hanja.txt'
        hanja_path.write_text('한:韓:\n', encoding='utf-8')
        symbol_path = tmp_path / 'symbol.txt'
        symbol_path.write_text('ㄱ:！:\n', encoding='utf-8')
        engine = load_engine(HangulConfig(), str(hanja_path), str(symbol_path))
        assert len(engine.table) == 1
        assert len(engine.symbol_table) == 1

    def test_missing_symbol_table_is_not_fatal(self, tmp_path):
        hanja_path = tmp_path / 'hanja.txt'
        hanja_path.write_text('한:韓:\n', encoding='utf-8')
        engine = load_engine(HangulConfig(), str(hanja_path), str(tmp_path / 'missing.txt'))
        assert engine.symbol_table is None
