#!/usr/bin/env python3
# syllable.py - Zhuyin (注音) syllable encoder
"""
A zhuyin syllable is an optional initial, an optional final and a tone.
Syllables map onto a dense 2-D table (http://en.wikipedia.org/wiki/Zhuyin_table):

    index = finals_index * INITIALS_SIZE + initials_index

Initials ㄅ..ㄙ rank 1..21 (0 = the syllable starts with a final).
Finals ㄚ..ㄦ rank 1..13. The pivot finals ㄧ (yi), ㄨ (wu) and ㄩ (yu) open
groups of two-letter finals: the group base (14, 25, 34) plus the 1-based
position of the ending final in that group.

Each table slot holds the number of words for each tone, followed by the word
runs in tone order:

    table[index] = ([count_tone0, ..., count_tone4], words)
"""

import logging

logger = logging.getLogger(__name__)

INITIALS_SIZE = 22
DEFAULT_TONE = ' '

# Default tone plus '˙', 'ˊ', 'ˇ' and 'ˋ'.
TONES = (DEFAULT_TONE, '˙', 'ˊ', 'ˇ', 'ˋ')

FIRST_INITIAL = 'ㄅ'    # ㄅ
FIRST_FINAL = 'ㄚ'      # ㄚ

YI_FINALS = 'ㄧ'        # ㄧ
WU_FINALS = 'ㄨ'        # ㄨ
YU_FINALS = 'ㄩ'        # ㄩ

YI_FINALS_INDEX = 14
WU_FINALS_INDEX = 25
YU_FINALS_INDEX = 34

# Finals that can follow ㄧ, ㄨ or ㄩ.
YI_ENDING_FINALS = 'ㄚㄛㄝㄞㄠㄡㄢㄣㄤㄥ'
WU_ENDING_FINALS = 'ㄚㄛㄞㄟㄢㄣㄤㄥ'
YU_ENDING_FINALS = 'ㄝㄢㄣㄥ'

PIVOT_FINALS = {
    YI_FINALS: (YI_FINALS_INDEX, YI_ENDING_FINALS),
    WU_FINALS: (WU_FINALS_INDEX, WU_ENDING_FINALS),
    YU_FINALS: (YU_FINALS_INDEX, YU_ENDING_FINALS),
}

FINALS_SIZE = YU_FINALS_INDEX + len(YU_ENDING_FINALS) + 1
SYLLABLES_SIZE = FINALS_SIZE * INITIALS_SIZE

# Decomposed slot positions
SLOT_INITIAL = 0
SLOT_PIVOT = 1
SLOT_FINAL = 2
SLOT_TONE = 3


def is_tone(c):
    return c in TONES


def get_tones(c):
    """Return the tone index of c; anything that is not a tone mark is tone 0."""
    try:
        return TONES.index(c)
    except ValueError:
        return 0


def is_yi_wu_yu_finals(c):
    return c in PIVOT_FINALS


def get_initials(c):
    """
    Return the row index in the zhuyin table for an initial.

    Returns:
        int: 1..21 for an initial, 0 if c is a final (syllables may start with
             a final), or -1 for anything else
    """
    index = ord(c) - ord(FIRST_INITIAL) + 1
    if index >= INITIALS_SIZE:
        return 0 if get_finals(c) > 0 else -1
    return index if index > 0 else -1


def get_finals(finals):
    """
    Return the column index in the zhuyin table for the given finals.

    Returns:
        int: 0 for empty finals, a positive index for valid finals,
             or -1 for an invalid combination
    """
    if len(finals) == 0:
        return 0
    if len(finals) > 2:
        return -1

    index = ord(finals[0]) - ord(FIRST_FINAL) + 1
    if 0 < index < YI_FINALS_INDEX:
        return index if len(finals) == 1 else -1

    if finals[0] not in PIVOT_FINALS:
        return -1
    base, endings = PIVOT_FINALS[finals[0]]
    if len(finals) == 1:
        return base
    position = endings.find(finals[1])
    if position < 0:
        return -1
    return base + position + 1


def get_syllables_index(syllables):
    """Return the dense table index for a tone-less syllable, or -1 if invalid."""
    if not syllables:
        return -1
    initials = get_initials(syllables[0])
    if initials < 0:
        return -1
    finals = get_finals(syllables[1:] if initials != 0 else syllables)
    if finals < 0:
        return -1
    return finals * INITIALS_SIZE + initials


def strip_tones(text):
    """
    Split text into (syllables, tone).

    Tone-less text is given the default tone.

    Returns:
        tuple: (syllables, tone), or None for empty text or a lone tone mark
    """
    if not text:
        return None
    tone = text[-1]
    if is_tone(tone):
        syllables = text[:-1]
        if not syllables:
            return None
        return syllables, tone
    return text, DEFAULT_TONE


def decompose(text):
    """
    Decompose composing text into four slots:
    [initial, yi/wu/yu pivot final, trailing final, tone].

    Absent parts are empty strings, and the default tone is never stored.
    E.g. 'ㄅㄨㄚˋ' -> ['ㄅ', 'ㄨ', 'ㄚ', 'ˋ']
    """
    slots = ['', '', '', '']
    pair = strip_tones(text)
    if pair is None:
        return slots
    syllables, tone = pair
    if tone != DEFAULT_TONE:
        slots[SLOT_TONE] = tone

    if get_initials(syllables[0]) > 0:
        slots[SLOT_INITIAL] = syllables[0]
        syllables = syllables[1:]

    if syllables:
        if is_yi_wu_yu_finals(syllables[0]):
            slots[SLOT_PIVOT] = syllables[0]
            if len(syllables) > 1:
                slots[SLOT_FINAL] = syllables[1]
        else:
            slots[SLOT_FINAL] = syllables[0]
    return slots


def compose(slots):
    """Re-synthesize composing text from decomposed slots."""
    return ''.join(s for s in slots if s and s != DEFAULT_TONE)


def compose_symbol(text, c):
    """
    Compose one zhuyin symbol into the composing text.

    A tone replaces (or removes, for the default tone) the current tone, a new
    initial replaces slot 0 and a final replaces its own slot.

    Returns:
        str: the new composing text, or None if c cannot be composed
    """
    if is_tone(c):
        if not text:
            return None
        pair = strip_tones(text)
        if pair is None:
            return None
        syllables, tone = pair
        if c == DEFAULT_TONE:
            return syllables
        return syllables + c

    if get_initials(c) > 0:
        if not text or get_initials(text[0]) == 0:
            return c + text
        return c + text[1:]

    if get_finals(c) > 0:
        slots = decompose(text)
        if is_yi_wu_yu_finals(c):
            slots[SLOT_PIVOT] = c
        else:
            slots[SLOT_FINAL] = c
        return compose(slots)

    return None


def lookup(table, text):
    """
    Look up the words for tone-marked zhuyin text in a packed table.

    Returns:
        str: concatenated words for that syllable and tone, or ''
    """
    pair = strip_tones(text)
    index = get_syllables_index(pair[0]) if pair is not None else -1
    if index < 0 or table is None or index >= len(table):
        return ''
    slot = table[index]
    if not slot:
        return ''
    counts, words = slot
    tone = get_tones(pair[1])
    length = counts[tone]
    if length == 0:
        return ''
    start = sum(counts[:tone])
    return ''.join(words[start:start + length])


def pack_entries(pairs):
    """
    Build a packed table from (zhuyin, word) pairs.

    Returns:
        list: SYLLABLES_SIZE slots, each None or [tone_counts, words]
    """
    buckets = {}
    skipped = 0
    for text, word in pairs:
        pair = strip_tones(text)
        index = get_syllables_index(pair[0]) if pair is not None else -1
        if index < 0:
            skipped += 1
            continue
        tones = buckets.setdefault(index, [[] for _ in TONES])
        tones[get_tones(pair[1])].append(word)

    if skipped:
        logger.warning(f'pack_entries(): skipped {skipped} entries with invalid syllables')

    table = [None] * SYLLABLES_SIZE
    for index, tones in buckets.items():
        table[index] = [[len(words) for words in tones], [w for words in tones for w in words]]
    return table
