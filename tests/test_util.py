#!/usr/bin/env python3
# tests/test_util.py - Unit tests for util.py

import pytest
import codecs
import json
import os
import tempfile
import shutil
from unittest.mock import patch
import sys

# Add src directory to path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))

import util


@pytest.fixture
def temp_dirs():
    """Create temporary directories for testing"""
    temp_home = tempfile.mkdtemp()
    temp_data = tempfile.mkdtemp()

    yield {
        'home': temp_home,
        'data': temp_data,
        'config_dir': os.path.join(temp_home, '.config', 'ibus-hangul-hanja'),
        'config_file': os.path.join(temp_home, '.config', 'ibus-hangul-hanja', 'config.json'),
        'default_config': os.path.join(temp_data, 'config.json')
    }

    # Cleanup
    shutil.rmtree(temp_home, ignore_errors=True)
    shutil.rmtree(temp_data, ignore_errors=True)


@pytest.fixture
def default_config_data():
    """Sample default configuration"""
    return {
        "keyboard": "2",
        "auto_reorder": True,
        "word_commit": False,
        "hanja_mode": False,
        "hanja_mode_toggle_keys": ["Hangul_Hanja", "F9"],
        "page_size": 10,
        "logging_level": "WARNING",
        "hanja_table": ""
    }


def write_json(path, data):
    os.makedirs(os.path.dirname(path), exist_ok=True)
    with open(path, 'w', encoding='utf-8') as f:
        json.dump(data, f)


class TestGetConfigData:
    """Test suite for get_config_data() function"""

    def _load(self, temp_dirs):
        with patch('util.get_user_config_dir', return_value=temp_dirs['config_dir']):
            with patch('util.get_default_config_path', return_value=temp_dirs['default_config']):
                return util.get_config_data()

    def test_no_warnings_when_config_exists_and_valid(self, temp_dirs, default_config_data):
        """Test that no warnings are returned when config exists and is valid"""
        write_json(temp_dirs['default_config'], default_config_data)
        write_json(temp_dirs['config_file'], dict(default_config_data, keyboard="39"))

        config, warnings = self._load(temp_dirs)

        assert warnings == ""
        assert config["keyboard"] == "39"

    def test_warning_when_config_not_found(self, temp_dirs, default_config_data):
        """Test that the default config.json is copied when the user has none"""
        write_json(temp_dirs['default_config'], default_config_data)

        config, warnings = self._load(temp_dirs)

        assert "config.json is not found" in warnings
        assert "Copying the default config.json" in warnings
        assert config == default_config_data
        assert os.path.exists(temp_dirs['config_file'])

    def test_warning_when_key_missing(self, temp_dirs, default_config_data):
        """Test that a missing key is filled in from the default config"""
        write_json(temp_dirs['default_config'], default_config_data)
        user_config = default_config_data.copy()
        del user_config['hanja_mode']
        write_json(temp_dirs['config_file'], user_config)

        config, warnings = self._load(temp_dirs)

        assert '"hanja_mode"' in warnings
        assert "was not found" in warnings
        assert config["hanja_mode"] is False

    def test_warning_when_type_mismatch(self, temp_dirs, default_config_data):
        """Test that a value of the wrong type is replaced by the default"""
        write_json(temp_dirs['default_config'], default_config_data)
        write_json(temp_dirs['config_file'], dict(default_config_data, page_size="ten"))

        config, warnings = self._load(temp_dirs)

        assert "Type mismatch" in warnings
        assert config["page_size"] == 10

    def test_multiple_warnings(self, temp_dirs, default_config_data):
        """Test that every problem is reported on its own line"""
        write_json(temp_dirs['default_config'], default_config_data)
        user_config = dict(default_config_data, word_commit="yes")
        del user_config['keyboard']
        write_json(temp_dirs['config_file'], user_config)

        config, warnings = self._load(temp_dirs)

        assert len(warnings.split("\n")) == 2

    def test_key_list_with_non_string_entries(self, temp_dirs, default_config_data):
        write_json(temp_dirs['default_config'], default_config_data)
        write_json(temp_dirs['config_file'], dict(default_config_data, hanja_mode_toggle_keys=["F9", 3]))

        config, warnings = self._load(temp_dirs)

        assert "non-string" in warnings
        assert config["hanja_mode_toggle_keys"] == ["Hangul_Hanja", "F9"]

    def test_json_decode_error_returns_default_config(self, temp_dirs, default_config_data):
        """Test that a broken config.json falls back to the default config"""
        write_json(temp_dirs['default_config'], default_config_data)
        os.makedirs(temp_dirs['config_dir'], exist_ok=True)
        with open(temp_dirs['config_file'], 'w', encoding='utf-8') as f:
            f.write('{"keyboard": ')

        config, warnings = self._load(temp_dirs)

        assert config == default_config_data

    def test_config_files_are_closed(self, temp_dirs, default_config_data):
        write_json(temp_dirs['default_config'], default_config_data)
        write_json(temp_dirs['config_file'], default_config_data)
        opened = []
        real_open = codecs.open

        def tracking_open(*args, **kwargs):
            f = real_open(*args, **kwargs)
            opened.append(f)
            return f

        with patch('util.codecs.open', side_effect=tracking_open):
            self._load(temp_dirs)

        assert len(opened) == 2
        assert all(f.closed for f in opened)

    def test_shipped_default_config(self):
        """Test that data/config.json holds every key the engine core reads"""
        from hangul_engine import DEFAULT_CONFIG
        with open(util.get_default_config_path(), encoding='utf-8') as f:
            shipped = json.load(f)
        for k, v in DEFAULT_CONFIG.items():
            assert shipped[k] == v


class TestSaveConfigData:
    """Test suite for save_config_data() function"""

    def test_save_config_creates_directory(self, temp_dirs, default_config_data):
        assert not os.path.exists(temp_dirs['config_dir'])

        with patch('util.get_user_config_dir', return_value=temp_dirs['config_dir']):
            result = util.save_config_data(default_config_data)

        assert result is True
        assert os.path.exists(temp_dirs['config_file'])

    def test_save_config_writes_correct_data(self, temp_dirs, default_config_data):
        with patch('util.get_user_config_dir', return_value=temp_dirs['config_dir']):
            util.save_config_data(dict(default_config_data, hanja_mode=True))

        with open(temp_dirs['config_file'], 'r', encoding='utf-8') as f:
            saved_config = json.load(f)

        assert saved_config["hanja_mode"] is True

    def test_save_config_preserves_unicode(self, temp_dirs):
        with patch('util.get_user_config_dir', return_value=temp_dirs['config_dir']):
            util.save_config_data({"hanja_table": "한자.txt"})

        with open(temp_dirs['config_file'], 'r', encoding='utf-8') as f:
            content = f.read()

        assert "한자.txt" in content
        assert '  "hanja_table"' in content


class TestTablePaths:
    """Test suite for locating the hanja and symbol tables"""

    def test_locate_data_file(self, temp_dirs):
        table = os.path.join(temp_dirs['data'], 'libhangul', 'hanja', 'hanja.txt')
        os.makedirs(os.path.dirname(table))
        open(table, 'w').close()

        with patch('util.get_data_dirs', return_value=[temp_dirs['home'], temp_dirs['data']]):
            assert util.locate_data_file(util.HANJA_TABLE_NAME) == table
            assert util.get_hanja_table_path({"hanja_table": ""}) == table

    def test_locate_missing_file(self, temp_dirs):
        with patch('util.get_data_dirs', return_value=[temp_dirs['data']]):
            assert util.locate_data_file('nothing.txt') is None

    def test_configured_table_in_user_config_dir(self, temp_dirs):
        os.makedirs(temp_dirs['config_dir'])
        table = os.path.join(temp_dirs['config_dir'], 'my_hanja.txt')
        open(table, 'w').close()

        with patch('util.get_user_config_dir', return_value=temp_dirs['config_dir']):
            assert util.get_hanja_table_path({"hanja_table": "my_hanja.txt"}) == table

    def test_absolute_table_path(self):
        assert util.get_hanja_table_path({"hanja_table": "/opt/hanja.txt"}) == "/opt/hanja.txt"

    def test_shipped_symbol_table(self):
        path = util.get_symbol_table_path({"symbol_table": ""})
        assert path == os.path.join(util.get_datadir(), 'symbol.txt')


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
