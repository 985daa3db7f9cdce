#!/usr/bin/env python3
# candidates.py - Candidate resolution, paging and selection

import itertools
import logging
import unicodedata
from collections import namedtuple

import rules
from store import StoreUnavailable

logger = logging.getLogger(__name__)

# text: what gets committed, comment: romanization or None, offset: position in the result
Candidate = namedtuple('Candidate', ['text', 'comment', 'offset'])

MAX_CANDIDATE_COUNT = 20
QUERY_LIMIT = 100
ASSOCIATION_LIMIT = 100

# Shorter keys than these are not prefix-expanded while full pinyin is preferred.
FULL_PINYIN_WORD_LENGTH = 3
FULL_PINYIN_PHRASE_LENGTH = 6

PHRASE_SEPARATOR = "'"


def text_width(text):
    """Display width of text in cells; East Asian wide and fullwidth characters take two."""
    if not text:
        return 0
    return sum(2 if unicodedata.east_asian_width(c) in ('W', 'F') else 1 for c in text)


def candidate_width(candidate):
    """Cells a candidate occupies in a strip, including one cell of padding."""
    return max(text_width(candidate.text), text_width(candidate.comment)) + 1


class CandidateResolver:
    """
    Keeps the current candidate list, its pages and the highlight.

    Rows are pulled from the store's row iterator only as far as the shown
    pages need them; pages already built are remembered, so paging back
    never touches the iterator again.

    A page holds at most page_size candidates (0 = unbounded, capped by
    MAX_CANDIDATE_COUNT) and, when page_width is set, at most that many
    display cells (every page shows at least one candidate).
    """

    def __init__(self, preferences=None, page_size=None, page_width=None):
        self._preferences = preferences
        if page_size is None:
            page_size = preferences.page_size if preferences is not None else 9
        if page_width is None:
            page_width = preferences.page_width if preferences is not None else 0
        self.page_size = min(page_size, MAX_CANDIDATE_COUNT) if page_size > 0 else MAX_CANDIDATE_COUNT
        self.page_width = page_width
        self._composer = None
        self.not_ready = False
        self.is_association = False
        self._reset()

    def _reset(self):
        self._rows = None
        self._candidates = []
        self._exhausted = True
        self._page_starts = [0]
        self._page_ends = {}
        self._page = 0
        self._highlight = -1

    def bind(self, composer):
        self._composer = composer

    def clear(self):
        self._reset()
        self.is_association = False

    def set_rows(self, rows, highlight_default=True):
        """
        Replace the candidate list with a new (lazy) sequence of Candidates.
        """
        self._reset()
        if rows is not None:
            self._rows = iter(rows)
            self._exhausted = False
        if highlight_default and self._materialize(1):
            self._highlight = 0

    def _materialize(self, count):
        """Pull rows until count candidates exist; returns False if there are fewer."""
        while len(self._candidates) < count and not self._exhausted:
            try:
                self._candidates.append(next(self._rows))
            except StopIteration:
                self._exhausted = True
                self._rows = None
        return len(self._candidates) >= count

    def _page_end(self, start):
        end = self._page_ends.get(start)
        if end is not None:
            return end
        end = start
        width = 0
        while end - start < self.page_size and self._materialize(end + 1):
            w = candidate_width(self._candidates[end])
            if self.page_width and end > start and width + w > self.page_width:
                break
            width += w
            end += 1
        self._page_ends[start] = end
        return end

    # ─── Paging ───

    @property
    def page_index(self):
        return self._page

    def page_start(self):
        return self._page_starts[self._page]

    def page(self):
        """Return the candidates of the current page."""
        start = self.page_start()
        return self._candidates[start:self._page_end(start)]

    def has_candidates(self):
        return self._materialize(1)

    def materialized_count(self):
        return len(self._candidates)

    def is_first_page(self):
        return self._page == 0

    def is_last_page(self):
        end = self._page_end(self.page_start())
        return not self._materialize(end + 1)

    def next_page(self):
        end = self._page_end(self.page_start())
        if not self._materialize(end + 1):
            return False
        self._page += 1
        if self._page == len(self._page_starts):
            self._page_starts.append(end)
        self._highlight = 0
        return True

    def prev_page(self):
        if self._page == 0:
            return False
        self._page -= 1
        self._highlight = 0
        return True

    # ─── Highlight and selection ───

    @property
    def highlight(self):
        return self._highlight

    def set_highlight(self, index):
        if 0 <= index < len(self.page()):
            self._highlight = index
            return True
        return False

    def move_highlight(self, delta):
        """Move the highlight within the page, turning the page at its edges."""
        if self._highlight < 0:
            return False
        target = self._highlight + delta
        if target < 0:
            if self.prev_page():
                self._highlight = len(self.page()) - 1
                return True
            return False
        if target >= len(self.page()):
            return self.next_page()
        self._highlight = target
        return True

    def pick_candidate(self, index):
        """
        Commit the index-th candidate of the current page.

        Returns:
            tuple: (text, comment), or None if there is no such candidate
        """
        page = self.page()
        if index < 0 or index >= len(page):
            return None
        candidate = page[index]
        logger.debug(f'pick_candidate({index}): {candidate.text!r}')
        if self._composer is not None:
            self._composer.commit(candidate.text)
        else:
            self.clear()
        self.on_picked(candidate.text)
        return candidate.text, candidate.comment

    def pick_highlighted(self, index=-1):
        """
        Pick the highlighted candidate, or the index-th one of the page.

        Returns:
            bool: False if nothing is highlighted
        """
        if self._highlight == -1:
            return False
        return self.pick_candidate(self._highlight if index == -1 else index) is not None

    def auto_select(self):
        """Pick the first candidate of the current list."""
        if not self.has_candidates():
            return False
        self._page = 0
        return self.pick_candidate(0) is not None

    # ─── Queries ───

    def query(self, code):
        raise NotImplementedError

    def on_picked(self, text):
        """Hook run after a pick; resolvers offer following words here."""

    def _prefers(self, name, default=False):
        if self._preferences is None:
            return default
        return getattr(self._preferences, name)


class TableResolver(CandidateResolver):
    """
    Candidates from a word dictionary (Cangjie or Zhuyin), with following
    words from an optional phrase dictionary.
    """

    def __init__(self, dictionary, phrases=None, preferences=None, page_size=None, page_width=None):
        super().__init__(preferences, page_size, page_width)
        self._dictionary = dictionary
        self._phrases = phrases

    def query(self, code):
        words = self._dictionary.get_words(code)
        self.not_ready = getattr(self._dictionary, 'not_ready', False)
        self.is_association = False
        self.set_rows(Candidate(w, None, i) for i, w in enumerate(words))

    def on_picked(self, text):
        if self._phrases is None or not text or not self._prefers('association', True):
            return
        following = self._phrases.get_following_words(text[-1])
        if following:
            self.set_rows((Candidate(w, None, i) for i, w in enumerate(following)), highlight_default=False)
            self.is_association = True


class SchemaResolver(CandidateResolver):
    """
    Candidates from a dictionary store, with lookup keys built by the
    schema's rules.

    Words:   lookup rules, then fuzzy expansion; an exact query first, then
             a prefix query (unless full pinyin is preferred and the key is short).
    Phrases: keys containing the delimiter are fuzzy-expanded per syllable
             and query whole phrases in three passes: exact, last syllable
             as prefix, every syllable as prefix.
    """

    def __init__(self, schema, store, fuzzy=None, preferences=None, page_size=None, page_width=None):
        super().__init__(preferences, page_size, page_width)
        self._schema = schema
        self._store = store
        self._fuzzy = fuzzy if fuzzy is not None else rules.FuzzyRuleSet(schema.fuzzy_rules, schema.schema_id)

    def _columns(self):
        return ('hz', 'py') if self._prefers('show_romanization') else ('hz',)

    def _query_store(self, expression, params, table=None):
        params = dict(params, table=table or self._schema.dictionary or None)
        logger.debug(f'store query: {expression!r} {params}')
        return self._store.query(expression, params)

    def _to_candidates(self, rows):
        for i, row in enumerate(rows or ()):
            comment = None
            if len(row) > 1 and row[1]:
                comment = self._schema.comment(row[1])
            yield Candidate(row[0], comment, i)

    def query(self, code):
        self.is_association = False
        try:
            if self._schema.is_reverse_lookup(code):
                candidates = self.get_reverse_lookup(code)
            else:
                candidates = self._to_candidates(self.get_word(code))
            self.not_ready = False
        except StoreUnavailable as e:
            logger.error(f'Dictionary store unavailable: {e}')
            self.not_ready = True
            candidates = None
        self.set_rows(candidates)

    def lookup_key(self, code):
        """
        Apply the lookup rules and the enabled fuzzy rules to code.

        A key with syllable delimiters is expanded syllable by syllable; every
        combination of the alternatives becomes one PHRASE_SEPARATOR-joined
        phrase, e.g. "zi'zi" -> "zi'zi OR zi'zhi OR zhi'zi OR zhi'zhi".
        """
        key = rules.translate(code, self._schema.lookup_rules)
        delimiter = self._schema.delimiter_char
        if delimiter:
            key = key.strip(delimiter)
            if delimiter in key:
                segments = [self._fuzzy.expand(s).split(rules.OR_SEPARATOR)
                            for s in key.split(delimiter) if s]
                return rules.OR_SEPARATOR.join(PHRASE_SEPARATOR.join(p) for p in itertools.product(*segments))
        return self._fuzzy.expand(key)

    def get_word(self, code):
        key = self.lookup_key(code)
        if PHRASE_SEPARATOR in key:
            return self.get_phrase(key)

        full_pinyin = self._prefers('full_pinyin') and len(key) < FULL_PINYIN_WORD_LENGTH
        params = {
            'column': 'py',
            'columns': self._columns(),
            'single': self._prefers('single_char'),
            'exclude_phrases': True,
        }
        rows = self._query_store(key, params)
        if rows is None and not full_pinyin:
            prefix_key = key.replace(' OR', '* OR') + '*'
            rows = self._query_store(prefix_key, dict(params, limit=QUERY_LIMIT))
        return rows

    def get_phrase(self, key):
        """
        Query phrases for a key whose syllables are separated by "'" and whose
        alternatives are joined by ' OR '.
        """
        full_pinyin = self._prefers('full_pinyin') and len(key) < FULL_PINYIN_PHRASE_LENGTH
        params = {'column': 'py', 'columns': self._columns(), 'limit': QUERY_LIMIT}
        alternatives = key.split(rules.OR_SEPARATOR)

        exact = ' OR '.join(f'"^{a.replace(PHRASE_SEPARATOR, " ")}"' for a in alternatives)
        rows = self._query_store(exact, params)
        if rows is not None or full_pinyin:
            return rows

        last_prefix = ' OR '.join(f'"^{a.replace(PHRASE_SEPARATOR, " ")}*"' for a in alternatives)
        rows = self._query_store(last_prefix, params)
        if rows is not None:
            return rows

        every_prefix = ' OR '.join(f'"^{a.replace(PHRASE_SEPARATOR, "* ")}*"' for a in alternatives)
        return self._query_store(every_prefix, params)

    def get_reverse_lookup(self, code):
        """
        Reverse lookup: words whose code in the reverse-lookup dictionary
        starts with code, commented with their romanizations.

        The reverse-lookup dictionary defaults to the schema's own one.

        Returns:
            generator of Candidates, or None if nothing matches
        """
        key = self._schema.reverse_lookup_code(code)
        table = self._schema.reverse_lookup_dictionary or None
        params = {'column': 'py', 'columns': ('hz',), 'exclude_phrases': True, 'limit': QUERY_LIMIT}
        rows = self._query_store(f'{key}*', params, table=table)
        if rows is None:
            return None
        return (Candidate(hz, ' '.join(self.get_comment(hz) or ()) or None, i) for i, (hz,) in enumerate(rows))

    def get_association(self, text):
        """
        Following words: the remainders of dictionary words that start with text.
        """
        length = len(text)
        params = {'column': 'hz', 'columns': ('hz',), 'min_length': length, 'limit': ASSOCIATION_LIMIT}
        rows = self._query_store(f'^{text}*', params)
        seen = set()
        for (hz,) in rows or ():
            following = hz[length:]
            if following and following not in seen:
                seen.add(following)
                yield following

    def on_picked(self, text):
        if not text or not self._prefers('association', True):
            return
        try:
            following = list(self.get_association(text))
        except StoreUnavailable as e:
            logger.error(f'Dictionary store unavailable: {e}')
            self.not_ready = True
            return
        if following:
            self.set_rows((Candidate(w, None, i) for i, w in enumerate(following)), highlight_default=False)
            self.is_association = True

    def get_comment(self, text):
        """
        Reverse lookup: the romanizations of text, formatted by the comment rules.

        Returns:
            list: formatted romanizations, or None if text is unknown
        """
        try:
            rows = self._query_store(text, {'column': 'hz', 'columns': ('py',)})
        except StoreUnavailable as e:
            logger.error(f'Dictionary store unavailable: {e}')
            return None
        if rows is None:
            return None
        return [self._schema.comment(py) for (py,) in rows]
