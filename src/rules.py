#!/usr/bin/env python3
# rules.py - Rule engine for schema-driven input (transliteration, rewrites, fuzzy expansion)
"""
Rule Engine
===========

Schemas carry small ordered rule lists that normalize what the user typed
into a dictionary lookup key.

Rule kinds
----------
xlit    literal transliteration; pattern and replacement are split into
        characters (or '|'-delimited tokens) and paired by position:

            xlit/abc/xyz        a->x, b->y, c->z
            xlit/zh|ch/Z|C      zh->Z, ch->C

xform   regex rewrite; a single replace-all, capture groups may be
        referenced as $1 or \\1:

            xform/^([nl])ue$/$1ve

Rule text
---------
Fields are separated by a space when the text contains one, otherwise by
an unescaped '/' ('\\/' stands for a literal slash). At most four fields.

Fuzzy rules
-----------
Fuzzy rules carry a tag instead of a kind: 'tag/pattern/replacement'.
An empty tag means the rule is always on; tagged rules are toggled by name.

fuzzy_expand() records every match of every active rule as a unit, then
applies each non-empty subset of units (1 .. 2^k - 1, bit i = unit i) to a
fresh copy of the input and joins the alternatives with ' OR ':

    rules ['/^z/zh']   'zi' -> 'zi OR zhi'
"""

import logging
import re

logger = logging.getLogger(__name__)

XLIT = 'xlit'
XFORM = 'xform'
OR_SEPARATOR = ' OR '
MAX_RULE_FIELDS = 4

_FIELD_SEPARATOR = re.compile(r'(?<!\\)/')
_GROUP_REFERENCE = re.compile(r'\$(\d+)')

# Compiled rules keyed by their field tuple, shared across schema reloads.
_compiled_rules = {}


def parse_rule(text):
    """
    Split rule text into its fields.

    Args:
        text: e.g. 'xform/^([nl])ue$/$1ve' or 'xlit abc xyz'

    Returns:
        list: up to MAX_RULE_FIELDS strings
    """
    if ' ' in text:
        fields = text.split(' ', MAX_RULE_FIELDS - 1)
    else:
        fields = _FIELD_SEPARATOR.split(text, MAX_RULE_FIELDS - 1)
    return [f.replace('\\/', '/') for f in fields]


def to_python_template(replacement):
    """Convert '$1' group references into Python's '\\g<1>' form."""
    return _GROUP_REFERENCE.sub(r'\\g<\1>', replacement)


def _split_tokens(text):
    return text.split('|') if '|' in text else list(text)


class Rule:
    """
    One compiled rewrite rule.

    Invalid rules (mismatched xlit token counts, bad regular expressions)
    are kept as no-ops so a broken schema never breaks composing.
    """

    def __init__(self, kind, pattern, replacement, tag=''):
        self.kind = kind
        self.pattern = pattern
        self.replacement = replacement
        self.tag = tag
        self._regex = None
        self._template = ''
        self._mapping = {}

        if kind == XLIT:
            self._compile_xlit()
        else:
            self._compile_regex()

    def __repr__(self):
        return f'Rule({self.kind!r}, {self.pattern!r}, {self.replacement!r}, tag={self.tag!r})'

    def _compile_xlit(self):
        sources = _split_tokens(self.pattern)
        targets = _split_tokens(self.replacement)
        if len(sources) != len(targets):
            logger.warning(f'xlit rule ignored, token counts differ: {self.pattern!r} -> {self.replacement!r}')
            return
        for source, target in zip(sources, targets):
            if source:
                self._mapping.setdefault(source, target)
        if self._mapping:
            # Longest tokens first so 'zh' wins over 'z'.
            tokens = sorted(self._mapping, key=len, reverse=True)
            self._regex = re.compile('|'.join(re.escape(t) for t in tokens))

    def _compile_regex(self):
        try:
            self._regex = re.compile(self.pattern)
        except re.error as e:
            logger.error(f'Invalid rule pattern {self.pattern!r}: {e}')
            return
        self._template = to_python_template(self.replacement)

    @property
    def valid(self):
        return self._regex is not None

    def apply(self, text):
        """Apply the rule to the whole text."""
        if self._regex is None:
            return text
        if self.kind == XLIT:
            return self._regex.sub(lambda m: self._mapping[m.group(0)], text)
        try:
            return self._regex.sub(self._template, text)
        except (re.error, IndexError) as e:
            logger.error(f'Rule {self!r} failed on {text!r}: {e}')
            return text

    def positions(self, text):
        """Return the start position of every match in text."""
        if self._regex is None:
            return []
        return [m.start() for m in self._regex.finditer(text)]

    def apply_at(self, text, pos):
        """Replace only the first match found at or after pos."""
        if self._regex is None:
            return text
        m = self._regex.search(text, pos)
        if m is None:
            return text
        if self.kind == XLIT:
            replaced = self._mapping[m.group(0)]
        else:
            try:
                replaced = m.expand(self._template)
            except (re.error, IndexError) as e:
                logger.error(f'Rule {self!r} failed on {text!r}: {e}')
                return text
        return text[:m.start()] + replaced + text[m.end():]


def compile_rule(fields, fuzzy=False):
    """
    Compile parsed rule fields, reusing an earlier compilation of the same rule.

    Args:
        fields: Output of parse_rule()
        fuzzy: If True, fields are (tag, pattern, replacement)

    Returns:
        Rule or None if the fields are incomplete
    """
    if len(fields) < 3:
        logger.warning(f'Incomplete rule ignored: {"/".join(fields)}')
        return None
    key = (fuzzy,) + tuple(fields[:3])
    rule = _compiled_rules.get(key)
    if rule is None:
        if fuzzy:
            rule = Rule(XFORM, fields[1], fields[2], tag=fields[0])
        else:
            rule = Rule(fields[0], fields[1], fields[2])
        _compiled_rules[key] = rule
    return rule


def compile_rules(texts, fuzzy=False):
    """
    Compile a list of rule strings from a schema.

    Returns:
        list: compiled Rule objects in declared order (empty for None)
    """
    rules = []
    for text in texts or []:
        if not isinstance(text, str):
            logger.warning(f'Rule ignored, not a string: {text!r}')
            continue
        rule = compile_rule(parse_rule(text), fuzzy=fuzzy)
        if rule is not None:
            rules.append(rule)
    return rules


def translate(text, rules):
    """
    Fold the rules over text, left to right.

    An empty or None rule list returns text unchanged.
    """
    if not rules:
        return text
    for rule in rules:
        text = rule.apply(text)
    return text


def fuzzy_expand(text, rules, enabled_names=()):
    """
    Expand text into an OR-joined list of fuzzy alternatives.

    Args:
        text: Normalized lookup key
        rules: Fuzzy rules (see compile_rules(..., fuzzy=True))
        enabled_names: Tags that are switched on; untagged rules always apply

    Returns:
        str: text itself when no rule matches, otherwise
             'text OR alt1 OR alt2 ...' without duplicates
    """
    if not rules:
        return text

    units = []
    for rule in rules:
        if rule.tag and rule.tag not in enabled_names:
            continue
        for pos in rule.positions(text):
            units.append((rule, pos))
    if not units:
        return text

    alternatives = [text]
    seen = {text}
    for subset in range(1, 1 << len(units)):
        chosen = [units[i] for i in range(len(units)) if subset & (1 << i)]
        # Rightmost first, so earlier positions are still valid.
        chosen.sort(key=lambda unit: unit[1], reverse=True)
        result = text
        for rule, pos in chosen:
            result = rule.apply_at(result, pos)
        if result not in seen:
            seen.add(result)
            alternatives.append(result)

    logger.debug(f'fuzzy_expand({text!r}): {len(units)} units, {len(alternatives) - 1} alternatives')
    return OR_SEPARATOR.join(alternatives)


def is_syllable(text, pattern, delimiter=''):
    """
    Check whether text is one or more delimiter-joined syllables.

    A missing syllable pattern accepts everything.
    """
    if pattern is None:
        return True
    if not delimiter:
        return pattern.fullmatch(text) is not None
    pieces = text.split(delimiter[0])
    while pieces and not pieces[-1]:
        pieces.pop()
    if not pieces:
        return False
    return all(pattern.fullmatch(p) is not None for p in pieces)


def segment(prefix, text, rules, pattern, delimiter=''):
    """
    Append newly typed text to the composed prefix.

    The spelling rules are applied to prefix + text first; if that is not a
    valid syllable sequence, a delimiter is inserted before text and tried again.

    Returns:
        str: the accepted composed string, or None if rejected
    """
    composed = translate(prefix + text, rules)
    if is_syllable(composed, pattern, delimiter):
        return composed
    if delimiter and prefix:
        composed = translate(prefix + delimiter[0] + text, rules)
        if is_syllable(composed, pattern, delimiter):
            return composed
    return None


def is_alphabet(text, alphabet, initials='', composing=False):
    """
    Check whether every character of text belongs to the alphabet.

    When nothing is being composed yet and the schema lists initials,
    a single character must also be one of the initials.
    """
    if not text or alphabet is None:
        return False
    if not composing and initials and len(text) == 1 and text not in initials:
        return False
    return all(c in alphabet for c in text)


class FuzzyRuleSet:
    """
    Named, independently toggleable fuzzy rules of one schema.

    The toggle state is kept as a string of '0'/'1' flags in tag declaration
    order (e.g. '0101') and persisted per schema id through the preferences.
    """

    def __init__(self, rules, schema_id='', preferences=None):
        self.rules = list(rules)
        self.schema_id = schema_id
        self._preferences = preferences

        self.names = []
        for rule in self.rules:
            if rule.tag and rule.tag not in self.names:
                self.names.append(rule.tag)
        self._enabled = [False] * len(self.names)

        if preferences is not None and self.names:
            self.load_state(preferences.fuzzy_state(schema_id))

    def load_state(self, state):
        for i, flag in enumerate(state[:len(self.names)]):
            self._enabled[i] = (flag == '1')

    @property
    def state(self):
        return ''.join('1' if on else '0' for on in self._enabled)

    def enabled_names(self):
        return [name for name, on in zip(self.names, self._enabled) if on]

    def is_enabled(self, name):
        return name in self.names and self._enabled[self.names.index(name)]

    def set_enabled(self, name, enabled):
        """
        Switch a named rule group on or off and persist the new state.

        Args:
            name: Tag of the rule group, or its index in self.names

        Returns:
            bool: False if there is no such group
        """
        index = name if isinstance(name, int) else (self.names.index(name) if name in self.names else -1)
        if index < 0 or index >= len(self.names):
            logger.warning(f'Unknown fuzzy rule group: {name!r}')
            return False
        self._enabled[index] = bool(enabled)
        if self._preferences is not None:
            self._preferences.set_fuzzy_state(self.schema_id, self.state)
        logger.info(f'Fuzzy rule "{self.names[index]}" {"enabled" if enabled else "disabled"} for schema {self.schema_id}')
        return True

    def expand(self, text):
        return fuzzy_expand(text, self.rules, self.enabled_names())
