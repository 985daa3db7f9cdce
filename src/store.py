#!/usr/bin/env python3
# store.py - Queryable dictionary store
"""
The candidate resolver talks to dictionaries through query(expression, params).

Expression syntax (full-text style, matched per column token):

    zi                  token equal to 'zi'
    zi*                 token starting with 'zi'
    zi OR zhi           disjunction of terms
    "ni hao"            consecutive tokens 'ni' 'hao'
    "^ni ha*"           same, anchored at the first token, last one a prefix

A column value is split on whitespace into tokens. Rows of phrase tables may
carry their romanization in the columns pya, pyb, pyc and pyz; the 'py'
column of such a row is those columns joined by spaces.

Query params:
    table            table name (default: the store's first table)
    column           column matched by a string expression (default 'py')
    columns          columns returned per row (default ('hz',))
    limit            maximum number of rows
    single           only rows whose 'hz' is one character
    exclude_phrases  only rows whose matched column is a single token
    min_length       only rows whose 'hz' is longer than this

An expression may also be a dict of column -> expression; a row must match
all of them.
"""

import itertools
import logging
import os

import orjson

from dictionary import TableLoader

logger = logging.getLogger(__name__)

OR_SEPARATOR = ' OR '
PHRASE_COLUMNS = ('pya', 'pyb', 'pyc', 'pyz')


class StoreUnavailable(Exception):
    """The backing store is not loaded (yet) or failed to load."""


class DictionaryStore:
    """
    Interface of a dictionary store.

    query() returns an iterator over the matching rows (tuples ordered as
    params['columns']), or None when nothing matches. It raises
    StoreUnavailable when the store cannot answer.
    """

    def is_ready(self):
        return True

    def query(self, expression, params=None):
        raise NotImplementedError


def parse_expression(expression):
    """
    Parse an expression into a list of terms.

    Returns:
        list: one (anchored, [(token, is_prefix), ...]) tuple per OR-term
    """
    terms = []
    for raw in expression.split(OR_SEPARATOR):
        raw = raw.strip()
        if raw.startswith('"') and raw.endswith('"') and len(raw) >= 2:
            raw = raw[1:-1]
        anchored = raw.startswith('^')
        if anchored:
            raw = raw[1:]
        tokens = []
        for token in raw.split():
            if token.endswith('*'):
                tokens.append((token[:-1], True))
            else:
                tokens.append((token, False))
        if tokens:
            terms.append((anchored, tokens))
    return terms


def _token_matches(value, token, is_prefix):
    return value.startswith(token) if is_prefix else value == token


def match_terms(terms, value):
    """Return True if the column value matches any of the parsed terms."""
    words = value.split()
    for anchored, tokens in terms:
        n = len(tokens)
        starts = [0] if anchored else range(len(words) - n + 1)
        for start in starts:
            if start + n > len(words):
                continue
            if all(_token_matches(words[start + i], t, p) for i, (t, p) in enumerate(tokens)):
                return True
    return False


def column_value(row, column):
    """
    Return the row's value for column; 'py' falls back to the joined
    multi-column romanization of phrase tables.
    """
    value = row.get(column)
    if value is None and column == 'py':
        value = ' '.join(row[c] for c in PHRASE_COLUMNS if row.get(c)).strip()
    return value if isinstance(value, str) else ''


class MemoryStore(DictionaryStore):
    """
    Dictionary store holding its tables in memory.

    Tables map a table name to an ordered list of row dicts, e.g.
        {"luna": [{"hz": "字", "py": "zi"}, {"hz": "你好", "pya": "ni", "pyb": "hao"}]}

    A store built from a file loads it in the background; queries issued
    before loading has finished wait up to `timeout` seconds and then raise
    StoreUnavailable.
    """

    def __init__(self, tables=None, path=None, timeout=None):
        self._timeout = timeout
        self._loader = None
        self._tables = {}
        if tables is not None:
            self._tables = {name: tuple(rows) for name, rows in tables.items()}
        elif path is not None:
            self._loader = TableLoader(path, parse=self._parse)
            self._loader.start()

    @staticmethod
    def _parse(data):
        if not isinstance(data, dict):
            raise ValueError('store file must be a JSON object of tables')
        return {name: tuple(rows) for name, rows in data.items() if isinstance(rows, list)}

    def _get_tables(self):
        if self._loader is None:
            return self._tables
        if not self._loader.wait(self._timeout):
            raise StoreUnavailable(f'store {self._loader.path} is still loading')
        tables = self._loader.result()
        if tables is None:
            raise StoreUnavailable(f'store {self._loader.path} failed to load')
        return tables

    def is_ready(self):
        return self._loader is None or (self._loader.is_done() and self._loader.result() is not None)

    def table_names(self):
        return list(self._get_tables())

    def save(self, path):
        """Write the tables to path as JSON."""
        tables = {name: list(rows) for name, rows in self._get_tables().items()}
        os.makedirs(os.path.dirname(os.path.abspath(path)), exist_ok=True)
        with open(path, 'wb') as f:
            f.write(orjson.dumps(tables))
        logger.info(f'Store saved to {path} ({len(tables)} tables)')

    def query(self, expression, params=None):
        params = params or {}
        tables = self._get_tables()
        name = params.get('table') or next(iter(tables), None)
        rows = tables.get(name)
        if rows is None:
            raise StoreUnavailable(f'no such table: {name!r}')

        column = params.get('column', 'py')
        if isinstance(expression, dict):
            conditions = [(c, parse_expression(e)) for c, e in expression.items()]
        else:
            conditions = [(column, parse_expression(expression))]
        if any(not terms for _, terms in conditions):
            return None

        columns = tuple(params.get('columns', ('hz',)))
        matches = self._iter_matches(rows, conditions, columns, params)
        limit = params.get('limit')
        if limit:
            matches = itertools.islice(matches, limit)

        first = next(matches, None)
        if first is None:
            logger.debug(f'query({expression!r}) on {name!r}: no rows')
            return None
        return itertools.chain([first], matches)

    def _iter_matches(self, rows, conditions, columns, params):
        single = params.get('single', False)
        exclude_phrases = params.get('exclude_phrases', False)
        min_length = params.get('min_length', 0)
        for row in rows:
            hz = row.get('hz', '')
            if single and len(hz) != 1:
                continue
            if min_length and len(hz) <= min_length:
                continue
            matched = True
            for column, terms in conditions:
                value = column_value(row, column)
                if exclude_phrases and len(value.split()) > 1:
                    matched = False
                    break
                if not match_terms(terms, value):
                    matched = False
                    break
            if matched:
                yield tuple(column_value(row, c) for c in columns)
