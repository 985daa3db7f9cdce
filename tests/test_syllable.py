#!/usr/bin/env python3
# tests/test_syllable.py - Unit tests for syllable.py

import itertools
import pytest
import os
import sys

# Add src directory to path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))

import syllable
from syllable import (
    DEFAULT_TONE,
    SYLLABLES_SIZE,
    compose,
    compose_symbol,
    decompose,
    get_finals,
    get_initials,
    get_syllables_index,
    strip_tones,
)

INITIALS = [chr(c) for c in range(ord('ㄅ'), ord('ㄙ') + 1)]
FINALS = [chr(c) for c in range(ord('ㄚ'), ord('ㄦ') + 1)]


class TestStripTones:
    """Test suite for strip_tones()"""

    def test_tone_marked(self):
        """Test that a trailing tone mark is split off"""
        assert strip_tones('ㄉㄚˋ') == ('ㄉㄚ', 'ˋ')
        assert strip_tones('ㄇㄚ˙') == ('ㄇㄚ', '˙')

    def test_default_tone(self):
        """Test that tone-less text gets the default tone"""
        assert strip_tones('ㄉㄚ') == ('ㄉㄚ', DEFAULT_TONE)

    def test_nothing_to_strip(self):
        """Test that empty text and a lone tone mark return None"""
        assert strip_tones('') is None
        assert strip_tones('ˋ') is None

    def test_get_tones(self):
        """Test tone indices; non-tone characters count as tone 0"""
        assert syllable.get_tones(DEFAULT_TONE) == 0
        assert syllable.get_tones('˙') == 1
        assert syllable.get_tones('ˋ') == 4
        assert syllable.get_tones('ㄅ') == 0


class TestInitialsAndFinals:
    """Test suite for get_initials() and get_finals()"""

    def test_initials(self):
        """Test initial ranks and the final/foreign cases"""
        assert get_initials('ㄅ') == 1
        assert get_initials('ㄙ') == 21
        assert get_initials('ㄚ') == 0
        assert get_initials('ㄧ') == 0
        assert get_initials('a') == -1

    def test_single_finals(self):
        """Test plain finals and the pivot finals ㄧ ㄨ ㄩ"""
        assert get_finals('') == 0
        assert get_finals('ㄚ') == 1
        assert get_finals('ㄦ') == 13
        assert get_finals('ㄧ') == 14
        assert get_finals('ㄨ') == 25
        assert get_finals('ㄩ') == 34

    def test_compound_finals(self):
        """Test two-letter finals built on a pivot"""
        assert get_finals('ㄧㄚ') == 15
        assert get_finals('ㄧㄥ') == 24
        assert get_finals('ㄨㄥ') == 33
        assert get_finals('ㄩㄥ') == 38

    def test_invalid_finals(self):
        """Test combinations that are not in the table"""
        assert get_finals('ㄧㄟ') == -1
        assert get_finals('ㄚㄚ') == -1
        assert get_finals('ㄧㄚㄚ') == -1
        assert get_finals('ㄅ') == -1


class TestSyllablesIndex:
    """Test suite for get_syllables_index()"""

    def test_index_formula(self):
        """Test index = finals * 22 + initials"""
        assert get_syllables_index('ㄅㄚ') == 1 * 22 + 1
        assert get_syllables_index('ㄚ') == 22
        assert get_syllables_index('ㄅ') == 1

    def test_invalid(self):
        """Test that empty and malformed syllables return -1"""
        assert get_syllables_index('') == -1
        assert get_syllables_index('ㄅㄅ') == -1
        assert get_syllables_index('aㄚ') == -1

    def test_largest_index_fits(self):
        """Test that the last cell of the table is addressable"""
        assert get_syllables_index('ㄙㄩㄥ') == SYLLABLES_SIZE - 1


class TestDecompose:
    """Test suite for decompose() and compose()"""

    def test_full_syllable(self):
        """Test that every slot is filled"""
        assert decompose('ㄅㄨㄚˋ') == ['ㄅ', 'ㄨ', 'ㄚ', 'ˋ']

    def test_partial(self):
        """Test that absent parts are empty strings"""
        assert decompose('ㄚ') == ['', '', 'ㄚ', '']
        assert decompose('ㄅ') == ['ㄅ', '', '', '']
        assert decompose('') == ['', '', '', '']

    def test_round_trip(self):
        """Test that compose() and decompose() are inverse on every slot combination"""
        for slots in itertools.product([''] + INITIALS, ['', 'ㄧ', 'ㄨ', 'ㄩ'],
                                       [''] + FINALS, ['', '˙', 'ˊ', 'ˇ', 'ˋ']):
            slots = list(slots)
            if not any(slots[:3]):
                continue
            assert decompose(compose(slots)) == slots


class TestComposeSymbol:
    """Test suite for compose_symbol()"""

    def test_tone_needs_text(self):
        """Test that a tone cannot start a syllable"""
        assert compose_symbol('', 'ˋ') is None

    def test_tone_add_replace_remove(self):
        """Test that a tone is added, replaced, and removed by the default tone"""
        assert compose_symbol('ㄅ', 'ˋ') == 'ㄅˋ'
        assert compose_symbol('ㄅˋ', 'ˊ') == 'ㄅˊ'
        assert compose_symbol('ㄅˋ', DEFAULT_TONE) == 'ㄅ'

    def test_initial(self):
        """Test that an initial replaces the current one or is prepended to a final"""
        assert compose_symbol('', 'ㄅ') == 'ㄅ'
        assert compose_symbol('ㄅㄚ', 'ㄆ') == 'ㄆㄚ'
        assert compose_symbol('ㄚ', 'ㄅ') == 'ㄅㄚ'

    def test_finals_take_their_slot(self):
        """Test that finals and pivots replace their own slot"""
        assert compose_symbol('ㄅㄚ', 'ㄛ') == 'ㄅㄛ'
        assert compose_symbol('ㄅㄚ', 'ㄧ') == 'ㄅㄧㄚ'
        assert compose_symbol('ㄅㄧㄚˋ', 'ㄨ') == 'ㄅㄨㄚˋ'

    def test_foreign_symbol(self):
        """Test that anything else is rejected"""
        assert compose_symbol('ㄅ', 'a') is None


class TestLookup:
    """Test suite for pack_entries() and lookup()"""

    @pytest.fixture
    def table(self):
        """Packed table for ㄉㄚ in several tones"""
        return syllable.pack_entries([
            ('ㄉㄚ', '搭'),
            ('ㄉㄚˊ', '達'),
            ('ㄉㄚˇ', '打'),
            ('ㄉㄚˋ', '大'),
            ('ㄉㄚˋ', '亣'),
        ])

    def test_pack_layout(self, table):
        """Test that a slot holds tone counts and tone-ordered words"""
        assert len(table) == SYLLABLES_SIZE
        assert table[get_syllables_index('ㄉㄚ')] == [[1, 0, 1, 1, 2], ['搭', '達', '打', '大', '亣']]

    def test_lookup_by_tone(self, table):
        """Test that each tone returns its own run"""
        assert syllable.lookup(table, 'ㄉㄚ') == '搭'
        assert syllable.lookup(table, 'ㄉㄚˊ') == '達'
        assert syllable.lookup(table, 'ㄉㄚˋ') == '大亣'

    def test_lookup_missing(self, table):
        """Test empty tones, unknown syllables and invalid text"""
        assert syllable.lookup(table, 'ㄉㄚ˙') == ''
        assert syllable.lookup(table, 'ㄅㄚ') == ''
        assert syllable.lookup(table, 'ˋ') == ''
        assert syllable.lookup(None, 'ㄉㄚ') == ''
