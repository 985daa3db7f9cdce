#!/usr/bin/env python3
# punct.py - Punctuation and literal-commit shaping

import logging

logger = logging.getLogger(__name__)

# Printable ASCII block and its offset into the fullwidth forms block.
ASCII_FIRST = 0x20
ASCII_LAST = 0x7E
FULLWIDTH_OFFSET = 0xFF00 - 0x20


def transform(text, upper=False, full=False):
    """
    Shape literally committed text.

    Args:
        text: The text to commit
        upper: Upper-case every character
        full: Map printable ASCII (0x20-0x7E) to the fullwidth forms (U+FF00-U+FF5E)

    Returns:
        str: the shaped text
    """
    if not text or not (upper or full):
        return text
    result = []
    for c in text:
        if upper:
            c = c.upper()
        if full and len(c) == 1 and ASCII_FIRST <= ord(c) <= ASCII_LAST:
            c = chr(ord(c) + FULLWIDTH_OFFSET)
        result.append(c)
    return ''.join(result)


class Punctuator:
    """
    Punctuation candidates from the schema's 'punctuator' section:

        "punctuator": {
            "full_shape": {",": "，", "/": ["、", "/"], "\\"": {"pair": ["“", "”"]}},
            "half_shape": {".": {"commit": "。"}}
        }

    A string value is the single candidate, a list offers several and a
    'pair' alternates between its two members on every use.
    """

    def __init__(self, config=None):
        self._config = config or {}
        self._pair_index = {}

    def query(self, symbol, full=False):
        """
        Return the punctuation candidates for symbol.

        Returns:
            list: candidate strings, or None if the symbol is not configured
        """
        shape = self._config.get('full_shape' if full else 'half_shape')
        if not isinstance(shape, dict) or symbol not in shape:
            return None
        value = shape[symbol]
        if isinstance(value, str):
            return [value]
        if isinstance(value, list):
            return [v for v in value if isinstance(v, str)]
        if isinstance(value, dict):
            if 'commit' in value:
                return [value['commit']]
            pair = value.get('pair')
            if isinstance(pair, list) and len(pair) == 2:
                index = 1 - self._pair_index[symbol] if symbol in self._pair_index else 0
                self._pair_index[symbol] = index
                return [pair[index]]
        logger.warning(f'Unsupported punctuator entry for {symbol!r}: {value!r}')
        return None

    def is_commit(self, symbol, full=False):
        """True if symbol commits directly instead of offering candidates."""
        shape = self._config.get('full_shape' if full else 'half_shape')
        if not isinstance(shape, dict):
            return False
        value = shape.get(symbol)
        return isinstance(value, str) or (isinstance(value, dict) and ('commit' in value or 'pair' in value))
