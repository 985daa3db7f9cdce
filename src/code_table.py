#!/usr/bin/env python3
# code_table.py - Cangjie (倉頡) code table encoder
"""
Cangjie codes are short sequences over a fixed 25-letter stroke alphabet.
A code is compressed into two small integers so the dictionary can be a
fixed-size array addressed by the first one and binary-searched by the second:

    primary index   = (rank(first) - 1) * BASE_NUMBER + rank(last)
    secondary index = interior letters as a base-BASE_NUMBER number,
                      padded with the "absent" digit 0

Example for code 日月金 (ranks 1, 2, 3):

    primary   = (1 - 1) * 26 + 3 = 3
    secondary = 2 * 26 * 26      = 1352     (interior: 月, then two absent digits)

Table layout (one slot per primary index, see pack_entries()):

    table[primary] = (keys, words)

where keys are the secondary indices sorted ascending and words[i] is the
word stored under keys[i].
"""

import bisect
import locale
import logging

logger = logging.getLogger(__name__)

# 日月金木水火土竹戈十大中一弓人心手口尸廿山女田難卜, ranked from 1.
LETTERS = {c: i for i, c in enumerate('日月金木水火土竹戈十大中一弓人心手口尸廿山女田難卜', 1)}

MAX_CODE_LENGTH = 5
MAX_SIMPLIFIED_CODE_LENGTH = 2
BASE_NUMBER = len(LETTERS) + 1
PRIMARY_SIZE = len(LETTERS) * BASE_NUMBER

INVALID_INDEX = -1


def is_letter(c):
    """Return True only if c is a valid cangjie letter."""
    return c in LETTERS


def primary_index(code):
    """
    Return the primary index computed from the first and last letters of code.

    The first letter can never be absent, so its rank is shifted to start from 0;
    a one-letter code leaves the last-letter digit at 0.

    Returns:
        int: index in [0, PRIMARY_SIZE), or INVALID_INDEX for an invalid code
    """
    length = len(code)
    if length < 1 or length > MAX_CODE_LENGTH:
        return INVALID_INDEX
    first = code[0]
    if not is_letter(first):
        return INVALID_INDEX
    index = (LETTERS[first] - 1) * BASE_NUMBER
    if length < 2:
        return index

    last = code[-1]
    if not is_letter(last):
        return INVALID_INDEX
    return index + LETTERS[last]


def secondary_index(code):
    """
    Return the secondary index computed from the letters between the first
    and the last letter of code.

    Returns:
        int: the padded mixed-radix value, or INVALID_INDEX if an interior
             letter is not in the alphabet
    """
    index = 0
    interior = code[1:-1]
    for c in interior:
        if not is_letter(c):
            return INVALID_INDEX
        index = index * BASE_NUMBER + LETTERS[c]
    # Pad with the absent digit up to MAX_CODE_LENGTH - 2 positions.
    for _ in range(len(interior), MAX_CODE_LENGTH - 2):
        index *= BASE_NUMBER
    return index


def search_words(secondary, keys, words):
    """
    Find every word stored under the secondary index.

    keys must be sorted ascending; equal keys form a run and the whole run is
    returned in table order.

    Args:
        secondary: The secondary index to look for
        keys: Sorted sequence of secondary indices
        words: Sequence of words parallel to keys

    Returns:
        str: the concatenated words of the run, or '' if there is none
    """
    start = bisect.bisect_left(keys, secondary)
    if start >= len(keys) or keys[start] != secondary:
        return ''
    end = bisect.bisect_right(keys, secondary, start)
    return ''.join(words[start:end])


def sort_words(words, collation_key=None):
    """
    Return all words of a primary slot ordered by a locale collation key,
    as used by simplified cangjie where only the first and last letters count.
    """
    key = collation_key if collation_key is not None else locale.strxfrm
    return ''.join(sorted(words, key=key))


def lookup(table, code, simplified=False, collation_key=None):
    """
    Look up the words for a cangjie code in a packed table.

    Args:
        table: Sequence indexed by primary index; each slot is None or (keys, words)
        code: The cangjie code
        simplified: If True, ignore the secondary index and return every word
                    under the primary index in collation order
        collation_key: Sort key for simplified mode (default: locale.strxfrm)

    Returns:
        str: concatenated words, or '' for invalid codes and empty slots
    """
    primary = primary_index(code)
    if primary < 0 or table is None or primary >= len(table):
        return ''
    slot = table[primary]
    if not slot:
        return ''
    keys, words = slot

    if simplified:
        return sort_words(words, collation_key)

    secondary = secondary_index(code)
    if secondary < 0:
        return ''
    return search_words(secondary, keys, words)


def pack_entries(pairs):
    """
    Build a packed table from (code, word) pairs.

    Words sharing a secondary index keep their input order, so the table order
    within a run is the order in which the pairs were given.

    Args:
        pairs: Iterable of (cangjie_code, word)

    Returns:
        list: PRIMARY_SIZE slots, each None or [keys, words]
    """
    buckets = {}
    skipped = 0
    for code, word in pairs:
        primary = primary_index(code)
        secondary = secondary_index(code) if primary >= 0 else INVALID_INDEX
        if primary < 0 or secondary < 0:
            skipped += 1
            continue
        buckets.setdefault(primary, []).append((secondary, word))

    if skipped:
        logger.warning(f'pack_entries(): skipped {skipped} entries with invalid codes')

    table = [None] * PRIMARY_SIZE
    for primary, entries in buckets.items():
        entries.sort(key=lambda e: e[0])
        table[primary] = [[e[0] for e in entries], [e[1] for e in entries]]
    return table
