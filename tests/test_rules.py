#!/usr/bin/env python3
# tests/test_rules.py - Unit tests for rules.py

import re
import pytest
import os
import sys
from unittest.mock import MagicMock

# Add src directory to path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))

import rules
from rules import OR_SEPARATOR, Rule, compile_rules, fuzzy_expand, parse_rule, translate

PINYIN_SYLLABLE = re.compile(r'(?:[bpmfdtnlgkhjqxzcsryw]|[zcs]h)?[aeiou]*(?:ng?)?')


class TestParseRule:
    """Test suite for parse_rule()"""

    def test_slash_separated(self):
        """Test the 'kind/pattern/replacement' form"""
        assert parse_rule('xform/^([nl])ue$/$1ve') == ['xform', '^([nl])ue$', '$1ve']

    def test_space_separated(self):
        """Test that a space takes precedence as separator"""
        assert parse_rule('xlit abc xyz') == ['xlit', 'abc', 'xyz']

    def test_escaped_slash(self):
        """Test that an escaped slash is a literal slash inside a field"""
        assert parse_rule(r'xform/a\/b/c') == ['xform', 'a/b', 'c']

    def test_field_limit(self):
        """Test that at most four fields are produced"""
        assert parse_rule('a/b/c/d/e') == ['a', 'b', 'c', 'd/e']

    def test_group_reference_template(self):
        """Test that $n references become Python group references"""
        assert rules.to_python_template('$1ve') == r'\g<1>ve'
        assert rules.to_python_template(r'\1') == r'\1'


class TestRule:
    """Test suite for Rule.apply()"""

    def test_xlit_characters(self):
        """Test a character-by-character transliteration"""
        assert Rule('xlit', 'abc', 'xyz').apply('aabbcc') == 'xxyyzz'

    def test_xlit_tokens(self):
        """Test a '|'-delimited token transliteration"""
        assert Rule('xlit', 'zh|ch', 'Z|C').apply('zhachi') == 'ZaCi'

    def test_xlit_is_simultaneous(self):
        """Test that replaced text is not rewritten again"""
        assert Rule('xlit', 'ab', 'ba').apply('ab') == 'ba'

    def test_xlit_mismatched_counts(self):
        """Test that an xlit rule with uneven token counts is a no-op"""
        rule = Rule('xlit', 'abc', 'xy')

        assert not rule.valid
        assert rule.apply('abc') == 'abc'

    def test_xform_group_reference(self):
        """Test $1 and \\1 references in xform replacements"""
        assert Rule('xform', '^([nl])ue$', '$1ve').apply('lue') == 'lve'
        assert Rule('xform', '(a)', r'\1\1').apply('a') == 'aa'

    def test_xform_replaces_all(self):
        """Test that xform replaces every match"""
        assert Rule('xform', 'v', 'u').apply('lvnv') == 'lunu'

    def test_invalid_regex(self):
        """Test that a bad pattern is kept as a no-op"""
        rule = Rule('xform', '(', 'x')

        assert not rule.valid
        assert rule.apply('(a') == '(a'
        assert rule.positions('(a') == []


class TestTranslate:
    """Test suite for compile_rules() and translate()"""

    def test_fold_in_order(self):
        """Test that rules are applied left to right"""
        assert translate('a', compile_rules(['xform/a/b', 'xform/b/c'])) == 'c'
        assert translate('a', compile_rules(['xform/b/c', 'xform/a/b'])) == 'b'

    def test_empty_rules(self):
        """Test that no rules leave the text unchanged"""
        assert translate('abc', None) == 'abc'
        assert translate('abc', []) == 'abc'

    def test_compiled_rules_are_shared(self):
        """Test that the same rule text compiles to the same object"""
        assert compile_rules(['xform/q/k'])[0] is compile_rules(['xform/q/k'])[0]

    def test_incomplete_and_foreign_entries(self):
        """Test that incomplete rules and non-strings are skipped"""
        assert compile_rules(['xform/a', 42, None]) == []


class TestFuzzyExpand:
    """Test suite for fuzzy_expand()"""

    def test_tagged_rule_disabled(self):
        """Test that a disabled tag leaves the key alone"""
        fuzzy = compile_rules(['zh/^z/zh'], fuzzy=True)

        assert fuzzy_expand('zi', fuzzy, []) == 'zi'

    def test_tagged_rule_enabled(self):
        """Test that an enabled tag adds the alternative"""
        fuzzy = compile_rules(['zh/^z/zh'], fuzzy=True)

        assert fuzzy_expand('zi', fuzzy, ['zh']) == 'zi OR zhi'

    def test_untagged_rule_always_applies(self):
        """Test that a rule without a tag is always on"""
        fuzzy = compile_rules(['/^z/zh'], fuzzy=True)

        assert fuzzy_expand('zi', fuzzy) == 'zi OR zhi'

    def test_no_match(self):
        """Test that a key no rule matches is returned as is"""
        fuzzy = compile_rules(['/^z/zh'], fuzzy=True)

        assert fuzzy_expand('ni', fuzzy) == 'ni'
        assert fuzzy_expand('ni', []) == 'ni'

    def test_every_subset(self):
        """Test that k independent matches give 2^k - 1 alternatives"""
        fuzzy = compile_rules(['a/^z/zh', 'b/n$/ng', 'c/i/ii'], fuzzy=True)

        result = fuzzy_expand('zin', fuzzy, ['a', 'b', 'c']).split(OR_SEPARATOR)

        assert result[0] == 'zin'
        assert len(result) == 8
        assert set(result) == {'zin', 'zhin', 'zing', 'zhing', 'ziin', 'zhiin', 'ziing', 'zhiing'}

    def test_each_match_is_a_unit(self):
        """Test that every match of a rule is toggled on its own, in subset order"""
        fuzzy = compile_rules(['/a/b'], fuzzy=True)

        assert fuzzy_expand('aa', fuzzy) == 'aa OR ba OR ab OR bb'

    def test_no_duplicates(self):
        """Test that equal alternatives are listed once"""
        fuzzy = compile_rules(['a/^z/zh', 'b/^z/zh'], fuzzy=True)

        result = fuzzy_expand('zi', fuzzy, ['a', 'b']).split(OR_SEPARATOR)

        assert len(result) == len(set(result))
        assert result.count('zhi') == 1

    def test_deterministic(self):
        """Test that the same input always gives the same output"""
        fuzzy = compile_rules(['a/^z/zh', 'b/n$/ng'], fuzzy=True)

        assert fuzzy_expand('zin', fuzzy, ['a', 'b']) == fuzzy_expand('zin', fuzzy, ['a', 'b'])


class TestSegment:
    """Test suite for is_syllable() and segment()"""

    def test_is_syllable(self):
        """Test delimiter-joined syllables; a trailing delimiter is allowed"""
        assert rules.is_syllable("ni'hao", PINYIN_SYLLABLE, "'")
        assert rules.is_syllable("ni'", PINYIN_SYLLABLE, "'")
        assert not rules.is_syllable("nih", PINYIN_SYLLABLE, "'")
        assert rules.is_syllable('anything', None)

    def test_extend_syllable(self):
        """Test that text extending a valid syllable is appended"""
        assert rules.segment('', 'n', [], PINYIN_SYLLABLE, "'") == 'n'
        assert rules.segment('n', 'i', [], PINYIN_SYLLABLE, "'") == 'ni'

    def test_insert_delimiter(self):
        """Test that a delimiter is inserted when the syllable cannot grow"""
        assert rules.segment('ni', 'h', [], PINYIN_SYLLABLE, "'") == "ni'h"

    def test_rejected(self):
        """Test that text fitting neither way is rejected"""
        assert rules.segment('ni', 'h', [], PINYIN_SYLLABLE, '') is None
        assert rules.segment('a', '1', [], re.compile('[a-z]+'), "'") is None

    def test_spell_rules_applied(self):
        """Test that spelling rules rewrite the composed string"""
        spell = compile_rules(['xform/^([nl])ue$/$1ve'])
        pattern = re.compile('[a-z]+')

        assert rules.segment('lu', 'e', spell, pattern, "'") == 'lve'


class TestIsAlphabet:
    """Test suite for is_alphabet()"""

    def test_initials_when_idle(self):
        """Test that a first character must be an initial"""
        assert not rules.is_alphabet('a', 'abc', 'b', composing=False)
        assert rules.is_alphabet('b', 'abc', 'b', composing=False)

    def test_any_letter_when_composing(self):
        """Test that any alphabet character continues a composition"""
        assert rules.is_alphabet('a', 'abc', 'b', composing=True)
        assert rules.is_alphabet('ab', 'abc', 'b')

    def test_outside_alphabet(self):
        """Test foreign characters and empty text"""
        assert not rules.is_alphabet('ad', 'abc', 'b', composing=True)
        assert not rules.is_alphabet('', 'abc')


class TestFuzzyRuleSet:
    """Test suite for FuzzyRuleSet"""

    @pytest.fixture
    def fuzzy_rules(self):
        """Two named groups, one with two rules"""
        return compile_rules(['zh/^z([^h])/zh$1', 'zh/^c([^h])/ch$1', 'n/^l/n'], fuzzy=True)

    def test_names_in_declaration_order(self, fuzzy_rules):
        """Test that tags are listed once in declaration order"""
        fuzzy = rules.FuzzyRuleSet(fuzzy_rules, 'luna')

        assert fuzzy.names == ['zh', 'n']
        assert fuzzy.state == '00'

    def test_load_state_from_preferences(self, fuzzy_rules):
        """Test that the persisted flags are restored"""
        preferences = MagicMock()
        preferences.fuzzy_state.return_value = '01'

        fuzzy = rules.FuzzyRuleSet(fuzzy_rules, 'luna', preferences)

        preferences.fuzzy_state.assert_called_once_with('luna')
        assert fuzzy.enabled_names() == ['n']
        assert fuzzy.expand('la') == 'la OR na'

    def test_set_enabled_persists(self, fuzzy_rules):
        """Test that toggling writes the new state through the preferences"""
        preferences = MagicMock()
        preferences.fuzzy_state.return_value = ''
        fuzzy = rules.FuzzyRuleSet(fuzzy_rules, 'luna', preferences)

        assert fuzzy.set_enabled('zh', True)
        preferences.set_fuzzy_state.assert_called_with('luna', '10')
        assert fuzzy.set_enabled(1, True)
        preferences.set_fuzzy_state.assert_called_with('luna', '11')

    def test_set_enabled_idempotent(self, fuzzy_rules):
        """Test that enabling twice keeps the same state"""
        fuzzy = rules.FuzzyRuleSet(fuzzy_rules, 'luna')

        fuzzy.set_enabled('zh', True)
        fuzzy.set_enabled('zh', True)

        assert fuzzy.state == '10'
        assert fuzzy.is_enabled('zh')
        assert not fuzzy.is_enabled('n')

    def test_unknown_group(self, fuzzy_rules):
        """Test that unknown names and indices are refused"""
        fuzzy = rules.FuzzyRuleSet(fuzzy_rules, 'luna')

        assert not fuzzy.set_enabled('ang', True)
        assert not fuzzy.set_enabled(5, True)
        assert fuzzy.state == '00'

    def test_expand_follows_toggles(self, fuzzy_rules):
        """Test that expansion uses only the enabled groups"""
        fuzzy = rules.FuzzyRuleSet(fuzzy_rules, 'luna')

        assert fuzzy.expand('zi') == 'zi'
        fuzzy.set_enabled('zh', True)
        assert fuzzy.expand('zi') == 'zi OR zhi'
