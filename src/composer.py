#!/usr/bin/env python3
# composer.py - Composing state machine
"""
Composer
========

Owns the composing buffer and moves between two states:

    Idle       buffer empty
    Composing  buffer holds symbols that are not committed yet

    Idle --accept_symbol--> Composing --commit/escape/finish--> Idle

Symbols are composed by the active scheme (see schemes.py); the composer
only decides whether composing is attempted at all, keeps the host's
composing preview up to date and asks the candidate resolver for new
candidates after every change.

Collaborators:
    sink        host editing surface: commit(text), set_composing_preview(text),
                clear_composing_preview()
    input_mode  zero-argument callable returning MODE_CHINESE or MODE_ASCII
    resolver    candidates.CandidateResolver bound through bind()
"""

import logging

import punct

logger = logging.getLogger(__name__)

MODE_CHINESE = 'chinese'
MODE_ASCII = 'ascii'

# Kinds of input field reported by the host at start()
INPUT_TEXT = 'text'
INPUT_SHORT_MESSAGE = 'short_message'
INPUT_NUMBER = 'number'
INPUT_DATETIME = 'datetime'
INPUT_PHONE = 'phone'
INPUT_NULL = 'null'

NON_COMPOSING_INPUTS = frozenset((INPUT_NUMBER, INPUT_DATETIME, INPUT_PHONE, INPUT_NULL))


class Composer:

    def __init__(self, scheme, sink=None, input_mode=None):
        self._scheme = scheme
        self._sink = sink
        self._input_mode = input_mode if input_mode is not None else (lambda: MODE_CHINESE)
        self._resolver = None
        self._buffer = ''
        self._can_compose = True
        self._enter_as_line_break = False

    def bind(self, resolver):
        """Attach the candidate resolver; the resolver commits picks through us."""
        self._resolver = resolver
        if resolver is not None:
            resolver.bind(self)

    @property
    def scheme(self):
        return self._scheme

    def set_scheme(self, scheme):
        self.escape()
        self._scheme = scheme

    @property
    def buffer(self):
        return self._buffer

    def is_composing(self):
        return len(self._buffer) > 0

    @property
    def can_compose(self):
        return self._can_compose

    @property
    def enter_as_line_break(self):
        return self._enter_as_line_break

    def is_ascii_mode(self):
        return self._input_mode() == MODE_ASCII

    def start(self, input_kind=INPUT_TEXT):
        """
        Reset for a new input session.

        Composing is disabled for number, date-time, phone and null fields;
        Enter inserts a line break in short-message fields.
        """
        self._buffer = ''
        self._can_compose = input_kind not in NON_COMPOSING_INPUTS
        self._enter_as_line_break = (input_kind == INPUT_SHORT_MESSAGE)
        if self._resolver is not None:
            self._resolver.clear()
        logger.debug(f'start({input_kind}): can_compose={self._can_compose}, enter_as_line_break={self._enter_as_line_break}')

    def _update(self):
        if self._sink is not None:
            if self._buffer:
                self._sink.set_composing_preview(self._scheme.preview(self._buffer))
            else:
                self._sink.clear_composing_preview()
        if self._resolver is not None:
            if self._buffer and self._scheme.validate(self._buffer):
                self._resolver.query(self._scheme.encode(self._buffer))
            else:
                if self._buffer:
                    logger.debug(f'_update: {self._buffer!r} does not encode, no candidates')
                self._resolver.clear()

    def accept_symbol(self, symbol):
        """
        Compose symbol into the buffer.

        Returns:
            bool: True if the symbol was consumed; False leaves the state
                  untouched so the host can commit the symbol literally
        """
        if not self._can_compose or self.is_ascii_mode():
            return False
        scheme = self._scheme
        if not (scheme.is_symbol(symbol, self._buffer) or scheme.is_delimiter(symbol, self._buffer)):
            logger.debug(f'accept_symbol({symbol!r}): not in the alphabet')
            return False

        composed = scheme.compose(self._buffer, symbol)
        if composed is None and self._buffer:
            # The symbol cannot extend the buffer; it starts a new code
            # once the current one is settled.
            if not scheme.is_symbol(symbol, ''):
                return False
            if not self.auto_select():
                self.escape()
            composed = scheme.compose('', symbol)
        if composed is None:
            return False

        logger.debug(f'accept_symbol({symbol!r}): {self._buffer!r} -> {composed!r}')
        self._buffer = composed
        self._update()
        self.auto_commit_check()
        return True

    def delete_last(self):
        """
        Remove the last logical unit of the buffer.

        Returns:
            bool: False when there is nothing to delete (the host should
                  handle the delete key itself)
        """
        if not self._buffer:
            return False
        self._buffer = self._scheme.delete_last(self._buffer)
        self._update()
        return True

    def commit(self, text):
        """
        Commit text to the host and return to Idle.

        Returns:
            bool: True if a sink received the text
        """
        self._buffer = ''
        if self._resolver is not None:
            self._resolver.clear()
        if self._sink is None:
            return False
        self._sink.clear_composing_preview()
        if text:
            logger.debug(f'commit({text!r})')
            self._sink.commit(text)
        return True

    def auto_select(self):
        """Pick the top candidate, if any; returns True when something was committed."""
        if self._resolver is None:
            return False
        return self._resolver.auto_select()

    def auto_commit_check(self, buffer=None):
        """
        Check whether the buffer must be settled without waiting for a pick:
        the maximum code length is reached or the auto-select pattern matches.

        Returns:
            bool: True if auto-select was signalled
        """
        if buffer is None:
            buffer = self._buffer
        if not buffer or not self._scheme.is_auto_select(buffer):
            return False
        logger.debug(f'auto_commit_check({buffer!r}): auto-select')
        self.auto_select()
        return True

    def escape(self):
        """Drop the buffer and the candidates without committing."""
        had_buffer = bool(self._buffer)
        self._buffer = ''
        if self._sink is not None and had_buffer:
            self._sink.clear_composing_preview()
        if self._resolver is not None:
            self._resolver.clear()

    def finish(self):
        """Focus loss, orientation or session change."""
        self.escape()

    def on_cursor_moved(self, position=None, expected=None):
        """
        The host moved the caret. Composing is abandoned unless the caret is
        where the composing text ends.
        """
        if self._buffer and (expected is None or position != expected):
            logger.debug(f'on_cursor_moved({position}, {expected}): escape')
            self.escape()

    def handle_enter(self):
        """
        Commit the raw buffer (delimiters become spaces) or, with an empty
        buffer in a short-message field, a line break.

        Returns:
            bool: False if the host should handle Enter itself
        """
        if self._buffer:
            text = self._buffer.strip()
            if self._scheme.delimiter:
                text = text.replace(self._scheme.delimiter, ' ')
            self.commit(text)
            return True
        if self._enter_as_line_break:
            self.commit('\n')
            return True
        return False

    def handle_space(self):
        """
        Pick the highlighted candidate; without one, drop the buffer, or
        commit a space when there is nothing to drop.
        """
        if self._resolver is not None and self._resolver.pick_highlighted():
            return True
        if self._buffer:
            self.escape()
        else:
            self.commit(' ')
        return True

    def handle_select(self, index):
        """Pick the index-th candidate of the current page."""
        if self._resolver is None:
            return False
        return self._resolver.pick_highlighted(index)

    def commit_literal(self, symbol, upper=False, full=False):
        """
        Commit a symbol that is not composed; the pending composition is
        settled first.
        """
        if self._buffer and not self.auto_select():
            self.escape()
        return self.commit(punct.transform(symbol, upper, full))
