#!/usr/bin/env python3
# dictionary.py - Word dictionaries for table-driven schemes (Cangjie, Zhuyin, phrases)

import bisect
import logging
import os
import threading

import orjson

import code_table
import syllable

logger = logging.getLogger(__name__)


def freeze(data):
    """Turn the lists of a decoded table into tuples so the snapshot is immutable."""
    if isinstance(data, list):
        return tuple(freeze(item) for item in data)
    if isinstance(data, dict):
        return {key: freeze(value) for key, value in data.items()}
    return data


class TableLoader:
    """
    Loads one JSON table on a background thread.

    Completion is signalled once through a threading.Event, whether loading
    succeeded or not; result() is None after a failure.
    """

    def __init__(self, path, parse=freeze):
        self.path = path
        self._parse = parse
        self._done = threading.Event()
        self._result = None
        self._thread = None

    def start(self):
        self._thread = threading.Thread(target=self._background_load, daemon=True)
        self._thread.start()
        return self

    def _background_load(self):
        try:
            if not os.path.exists(self.path):
                logger.warning(f'Dictionary file not found: {self.path}')
                return
            with open(self.path, 'rb') as f:
                data = orjson.loads(f.read())
            self._result = self._parse(data)
            logger.info(f'Loaded dictionary: {self.path}')
        except orjson.JSONDecodeError as e:
            logger.error(f'Failed to parse dictionary JSON: {self.path} - {e}')
        except (OSError, ValueError, TypeError) as e:
            logger.error(f'Failed to load dictionary: {self.path} - {e}')
        finally:
            self._done.set()

    def is_done(self):
        return self._done.is_set()

    def wait(self, timeout=None):
        """
        Block until loading has finished.

        Returns:
            bool: False if the timeout expired first
        """
        return self._done.wait(timeout)

    def result(self):
        return self._result


class TableArena:
    """
    Holds immutable dictionary snapshots under integer handles.

    A schema switch adds the newly loaded snapshot and activates it; the
    previously active snapshot is dropped from the arena, while readers that
    still hold a reference to it keep a valid object.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._snapshots = {}
        self._next_handle = 1
        self._active = None

    def add(self, snapshot):
        with self._lock:
            handle = self._next_handle
            self._next_handle += 1
            self._snapshots[handle] = snapshot
        return handle

    def get(self, handle):
        with self._lock:
            return self._snapshots.get(handle)

    def activate(self, handle):
        """
        Make handle the active snapshot.

        Returns:
            int or None: the previously active handle
        """
        with self._lock:
            if handle not in self._snapshots:
                raise KeyError(f'unknown snapshot handle: {handle}')
            previous = self._active
            self._active = handle
            if previous is not None and previous != handle:
                del self._snapshots[previous]
        logger.debug(f'TableArena: active snapshot {previous} -> {handle}')
        return previous

    def release(self, handle):
        """Drop an inactive snapshot."""
        with self._lock:
            if handle != self._active:
                self._snapshots.pop(handle, None)

    @property
    def active_handle(self):
        with self._lock:
            return self._active

    @property
    def active(self):
        with self._lock:
            return self._snapshots.get(self._active)

    def __len__(self):
        with self._lock:
            return len(self._snapshots)


class WordDictionary:
    """
    Base class of the table dictionaries.

    A dictionary is either given its table directly or loads it from a JSON
    file in the background. The first lookup waits for loading to finish
    (up to `timeout` seconds); until then lookups return nothing and
    not_ready is set.
    """

    def __init__(self, path=None, table=None, timeout=None):
        self._timeout = timeout
        self._table = freeze(table) if table is not None else None
        self._loader = None
        self.not_ready = False
        if table is None and path is not None:
            self._loader = TableLoader(path).start()

    def table(self):
        if self._loader is None:
            return self._table
        if not self._loader.wait(self._timeout):
            logger.warning(f'Dictionary {self._loader.path} is not loaded yet')
            self.not_ready = True
            return None
        self.not_ready = self._loader.result() is None
        return self._loader.result()

    def is_ready(self):
        return self._loader is None or self._loader.is_done()

    def get_words(self, code):
        """
        Return the concatenated words for code, or '' if there are none.
        """
        raise NotImplementedError


class CangjieDictionary(WordDictionary):
    """Cangjie words, table format produced by code_table.pack_entries()."""

    def __init__(self, path=None, table=None, timeout=None, simplified=False, collation_key=None):
        super().__init__(path=path, table=table, timeout=timeout)
        self.simplified = simplified
        self.collation_key = collation_key

    def get_words(self, code):
        return code_table.lookup(self.table(), code, self.simplified, self.collation_key)


class ZhuyinDictionary(WordDictionary):
    """Zhuyin words, table format produced by syllable.pack_entries()."""

    def get_words(self, code):
        return syllable.lookup(self.table(), code)


class PhraseDictionary(WordDictionary):
    """
    Following-word suggestions.

    Table format:
        {"words": ["A", "B"], "offsets": [0, 2], "following": ["a", "ab", "b"]}
    words are sorted; the following words of words[i] are
    following[offsets[i]:offsets[i + 1]] (up to the end for the last word).
    A following word may be longer than one character.
    """

    def get_following_words(self, c):
        """
        Return the following words of character c as a tuple, or () if there are none.
        """
        table = self.table()
        if not table or not c:
            return ()
        try:
            words, offsets, following = table['words'], table['offsets'], table['following']
        except (KeyError, TypeError):
            logger.error('Phrase dictionary is malformed')
            return ()

        index = bisect.bisect_left(words, c)
        if index >= len(words) or words[index] != c:
            return ()
        offset = offsets[index]
        end = offsets[index + 1] if index < len(offsets) - 1 else len(following)
        return tuple(following[offset:end])

    def get_words(self, code):
        return self.get_following_words(code[-1:] if code else '')


def pack_phrases(phrases):
    """
    Build a phrase table from two-character (or longer) phrases; the first
    character selects the entry and the rest is the following word.
    """
    grouped = {}
    for phrase in phrases:
        if len(phrase) < 2:
            continue
        grouped.setdefault(phrase[0], []).append(phrase[1:])
    words = sorted(grouped)
    offsets = []
    following = []
    for word in words:
        offsets.append(len(following))
        following.extend(grouped[word])
    return {'words': words, 'offsets': offsets, 'following': following}
