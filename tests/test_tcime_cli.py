#!/usr/bin/env python3
# tests/test_tcime_cli.py - Unit tests for tcime_cli.py

import json
import pytest
import os
import sys
from unittest.mock import patch

# Add src directory to path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))

import code_table
import tcime_cli


def run_cli(*argv):
    with patch.object(sys, 'argv', ['tcime_cli.py'] + list(argv)):
        return tcime_cli.main()


class TestSplitKeys:
    """Test suite for split_keys()"""

    def test_named_keys(self):
        """Test that '<name>' stands for one named key"""
        assert tcime_cli.split_keys('ni<space>') == ['n', 'i', 'space']
        assert tcime_cli.split_keys('<BackSpace>a') == ['BackSpace', 'a']

    def test_plain_keys(self):
        """Test that other characters are single keys"""
        assert tcime_cli.split_keys('a,') == ['a', ',']
        assert tcime_cli.split_keys('') == []


class TestCommands:
    """Test suite for the CLI commands"""

    def test_no_command(self, capsys):
        """Test that running without a command prints help"""
        assert run_cli() == 1
        assert 'usage' in capsys.readouterr().out

    def test_encode(self, capsys):
        """Test the cangjie index output"""
        assert run_cli('encode', '日月金') == 0

        out = capsys.readouterr().out
        assert 'Primary:   3' in out
        assert 'Secondary: 1352' in out

    def test_encode_keys(self, capsys):
        """Test that QWERTY keys are mapped to cangjie letters"""
        assert run_cli('encode', 'ab', '--keys') == 0
        assert 'Code:      日月' in capsys.readouterr().out

    def test_encode_invalid(self, capsys):
        """Test that an invalid code is reported"""
        assert run_cli('encode', 'xyz') == 1
        assert 'ERROR' in capsys.readouterr().out

    def test_zhuyin(self, capsys):
        """Test the zhuyin index and slots output"""
        assert run_cli('zhuyin', 'ㄅㄨㄚˋ') == 0

        out = capsys.readouterr().out
        assert 'Tone:      4' in out
        assert "['ㄅ', 'ㄨ', 'ㄚ', 'ˋ']" in out

    def test_expand(self, capsys):
        """Test fuzzy expansion with the packaged schema"""
        assert run_cli('expand', 'luna_pinyin', 'zi', '--fuzzy', 'zh') == 0
        assert 'Expanded:  zi OR zhi' in capsys.readouterr().out

    def test_expand_unknown_group(self, capsys):
        """Test that an unknown fuzzy group is refused"""
        assert run_cli('expand', 'luna_pinyin', 'zi', '--fuzzy', 'xx') == 1
        assert 'unknown fuzzy group' in capsys.readouterr().out

    def test_type(self, capsys, tmp_path):
        """Test feeding keys through the engine"""
        with open(tmp_path / 'cangjie.json', 'w', encoding='utf-8') as f:
            json.dump(code_table.pack_entries([('日月', '明')]), f, ensure_ascii=False)

        assert run_cli('type', 'cangjie', 'ab<space>', '--tables-dir', str(tmp_path)) == 0
        assert 'Committed: 明' in capsys.readouterr().out
