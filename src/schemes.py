#!/usr/bin/env python3
# schemes.py - Input scheme variants behind one composing interface
"""
Every scheme answers the same questions about a composing buffer, so the
composer never needs to know which input method is active:

    is_symbol(symbol, buffer)   may symbol be composed at all?
    compose(buffer, symbol)     new buffer, or None if it is rejected
    delete_last(buffer)         buffer without its last logical unit
    encode(buffer)              lookup key handed to the candidate resolver
    validate(buffer)            does the buffer encode to a table index?
    preview(buffer)             text shown as composing preview
    is_auto_select(buffer)      should the top candidate be picked right away?

Schemes do not own the buffer; they are stateless with respect to it.
"""

import logging

import code_table
import rules
import syllable

logger = logging.getLogger(__name__)

# Standard QWERTY positions of the cangjie letters (A=日 ... Y=卜).
CANGJIE_KEYMAP = dict(zip('abcdefghijklmnopqrstuvwxy', code_table.LETTERS))

# Standard (Dachen) zhuyin keyboard; space is the default tone.
ZHUYIN_KEYMAP = {
    '1': 'ㄅ', 'q': 'ㄆ', 'a': 'ㄇ', 'z': 'ㄈ',
    '2': 'ㄉ', 'w': 'ㄊ', 's': 'ㄋ', 'x': 'ㄌ',
    'e': 'ㄍ', 'd': 'ㄎ', 'c': 'ㄏ',
    'r': 'ㄐ', 'f': 'ㄑ', 'v': 'ㄒ',
    '5': 'ㄓ', 't': 'ㄔ', 'g': 'ㄕ', 'b': 'ㄖ',
    'y': 'ㄗ', 'h': 'ㄘ', 'n': 'ㄙ',
    'u': 'ㄧ', 'j': 'ㄨ', 'm': 'ㄩ',
    '8': 'ㄚ', 'i': 'ㄛ', 'k': 'ㄜ', ',': 'ㄝ',
    '9': 'ㄞ', 'o': 'ㄟ', 'l': 'ㄠ', '.': 'ㄡ',
    '0': 'ㄢ', 'p': 'ㄣ', ';': 'ㄤ', '/': 'ㄥ', '-': 'ㄦ',
    '6': 'ˊ', '3': 'ˇ', '4': 'ˋ', '7': '˙',
}


class Scheme:
    """Base scheme: accepts nothing."""

    name = ''
    keymap = {}

    @property
    def max_code_length(self):
        return 0

    @property
    def delimiter(self):
        return ''

    def map_key(self, key):
        """Translate a physical key into the scheme's symbol."""
        return self.keymap.get(key, key)

    def is_symbol(self, symbol, buffer=''):
        return False

    def is_delimiter(self, symbol, buffer=''):
        return False

    def compose(self, buffer, symbol):
        return None

    def delete_last(self, buffer):
        return buffer[:-1]

    def encode(self, buffer):
        return buffer

    def validate(self, buffer):
        return bool(buffer)

    def preview(self, buffer):
        return buffer

    def is_auto_select(self, buffer):
        return False


class CangjieScheme(Scheme):
    """
    Cangjie: letters are appended up to the maximum code length; further
    letters are consumed without changing the buffer.
    """

    name = 'cangjie'
    keymap = CANGJIE_KEYMAP

    def __init__(self, simplified=False, auto_select_max_length=False):
        self.simplified = simplified
        self.auto_select_max_length = auto_select_max_length

    @property
    def max_code_length(self):
        return code_table.MAX_SIMPLIFIED_CODE_LENGTH if self.simplified else code_table.MAX_CODE_LENGTH

    def is_symbol(self, symbol, buffer=''):
        return code_table.is_letter(symbol)

    def compose(self, buffer, symbol):
        if not code_table.is_letter(symbol):
            return None
        if len(buffer) >= self.max_code_length:
            return buffer
        return buffer + symbol

    def validate(self, buffer):
        return code_table.primary_index(buffer) >= 0 and code_table.secondary_index(buffer) >= 0

    def is_auto_select(self, buffer):
        return self.auto_select_max_length and len(buffer) >= self.max_code_length


class ZhuyinScheme(Scheme):
    """
    Zhuyin: symbols are placed into the initial / final / tone slots of the
    syllable, so typing a new initial or final replaces the old one.
    """

    name = 'zhuyin'
    keymap = ZHUYIN_KEYMAP

    def map_key(self, key):
        if key == ' ':
            return syllable.DEFAULT_TONE
        return self.keymap.get(key, key)

    def is_symbol(self, symbol, buffer=''):
        if syllable.is_tone(symbol):
            return bool(buffer)
        return syllable.get_initials(symbol) > 0 or syllable.get_finals(symbol) > 0

    def compose(self, buffer, symbol):
        return syllable.compose_symbol(buffer, symbol)

    def validate(self, buffer):
        pair = syllable.strip_tones(buffer)
        return pair is not None and syllable.get_syllables_index(pair[0]) >= 0


class SchemaScheme(Scheme):
    """
    Scheme driven by a schema document: alphabet, initials, delimiter,
    spelling rules, syllable pattern and auto-select policy all come from
    the schema.

    A buffer matching the schema's reverse-lookup pattern (e.g. "`abc") is
    composed verbatim; segmentation and spelling rules do not apply to it.
    """

    def __init__(self, schema, fuzzy=None):
        self.schema = schema
        self.fuzzy = fuzzy if fuzzy is not None else rules.FuzzyRuleSet(schema.fuzzy_rules, schema.schema_id)
        self.name = schema.schema_id

    @property
    def max_code_length(self):
        return self.schema.max_code_length

    @property
    def delimiter(self):
        return self.schema.delimiter_char

    def is_reverse_lookup(self, buffer):
        return bool(buffer) and self.schema.is_reverse_lookup(buffer)

    def is_symbol(self, symbol, buffer=''):
        if self.is_reverse_lookup(buffer + symbol):
            return True
        # The buffer may hold delimiters, which are not in the alphabet.
        return rules.is_alphabet(symbol, self.schema.alphabet, self.schema.initials, composing=bool(buffer))

    def is_delimiter(self, symbol, buffer=''):
        return bool(buffer) and self.schema.is_delimiter(symbol)

    def compose(self, buffer, symbol):
        if self.is_reverse_lookup(buffer + symbol):
            return buffer + symbol
        if self.is_reverse_lookup(buffer):
            return None
        if self.is_delimiter(symbol, buffer):
            if buffer.endswith(self.delimiter):
                return buffer
            return buffer + self.delimiter
        if not self.is_symbol(symbol, buffer):
            return None
        if self.max_code_length and len(buffer) >= self.max_code_length:
            return buffer
        composed = rules.segment(buffer, symbol, self.schema.spell_rules,
                                 self.schema.syllable_pattern, self.schema.delimiter)
        logger.debug(f'SchemaScheme.compose({buffer!r}, {symbol!r}) -> {composed!r}')
        return composed

    def delete_last(self, buffer):
        if self.is_reverse_lookup(buffer):
            return buffer[:-1]
        buffer = buffer[:-1]
        if self.delimiter and buffer.endswith(self.delimiter):
            buffer = buffer[:-1]
        return buffer

    def validate(self, buffer):
        if self.is_reverse_lookup(buffer):
            return bool(self.schema.reverse_lookup_code(buffer))
        return bool(buffer) and rules.is_syllable(buffer, self.schema.syllable_pattern, self.schema.delimiter)

    def preview(self, buffer):
        return self.schema.preedit(buffer)

    def is_auto_select(self, buffer):
        if self.is_reverse_lookup(buffer):
            return False
        if self.max_code_length and len(buffer) >= self.max_code_length:
            return True
        return self.schema.is_auto_select(buffer)
