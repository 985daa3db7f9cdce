#!/usr/bin/env python3
# engine.py - Input engine wiring schemes, composer and candidate resolvers

import logging
import os

from candidates import Candidate, SchemaResolver, TableResolver
from composer import Composer, INPUT_TEXT, MODE_ASCII, MODE_CHINESE
from dictionary import CangjieDictionary, PhraseDictionary, TableArena, ZhuyinDictionary
import punct
import rules
from schema import JsonSchemaSource, load_schema
from schemes import CangjieScheme, SchemaScheme, ZhuyinScheme
from store import MemoryStore
import util

logger = logging.getLogger(__name__)

INPUT_MODE_NAMES = (MODE_CHINESE, MODE_ASCII)

SCHEME_CANGJIE = 'cangjie'
SCHEME_ZHUYIN = 'zhuyin'

CANGJIE_TABLE = 'cangjie.json'
ZHUYIN_TABLE = 'zhuyin.json'
PHRASE_TABLE = 'phrases.json'

# Key names handled by process_key(); anything else must be a single character.
KEY_RETURN = 'Return'
KEY_BACKSPACE = 'BackSpace'
KEY_ESCAPE = 'Escape'
KEY_SPACE = 'space'
KEY_PAGE_UP = 'Page_Up'
KEY_PAGE_DOWN = 'Page_Down'
KEY_UP = 'Up'
KEY_DOWN = 'Down'
KEY_LEFT = 'Left'
KEY_RIGHT = 'Right'


class TextBuffer:
    """
    Minimal text sink: collects committed text and mirrors the composing preview.
    """

    def __init__(self):
        self.committed = []
        self.preview = ''

    def commit(self, text):
        self.committed.append(text)

    def set_composing_preview(self, text):
        self.preview = text

    def clear_composing_preview(self):
        self.preview = ''

    @property
    def text(self):
        return ''.join(self.committed)


class EngineTCIME:
    """
    Host-independent input engine.

    The engine owns one Composer and swaps the active scheme, resolver and
    punctuator as a bundle. Bundles are snapshots in a TableArena; switching
    schemes builds a new bundle and activates it, while a bundle that is
    still referenced elsewhere stays usable.
    """

    def __init__(self, config=None, sink=None, schema_source=None, tables_dirs=None, scheme=None):
        self._mode = MODE_CHINESE
        self._sink = sink if sink is not None else TextBuffer()
        self._schema_source = schema_source if schema_source is not None else JsonSchemaSource()
        if tables_dirs is None:
            tables_dirs = [util.get_user_tables_dir(), os.path.join(util.get_datadir(), 'tables')]
        self._tables_dirs = list(tables_dirs)

        self._load_configs(config)
        self._arena = TableArena()
        self._composer = Composer(None, self._sink, input_mode=lambda: self._mode)
        self.set_scheme(scheme or self._preferences.scheme)

    def _load_configs(self, config):
        '''
        Load config.json (unless a config dict is given) and apply its log level.
        '''
        if config is None:
            config, warnings = util.get_config_data()
            if warnings:
                logger.warning(warnings)
        self._config = config
        self._preferences = util.Preferences(config)
        level = config.get('log_level', 'WARNING')
        if level not in util.NAME_TO_LOGGING_LEVEL:
            logger.warning(f'Specified logging level {level} is not recognized. Using the default WARNING level.')
        logging.getLogger().setLevel(self._preferences.log_level)
        logger.debug('config loaded')

    @property
    def preferences(self):
        return self._preferences

    @property
    def composer(self):
        return self._composer

    @property
    def sink(self):
        return self._sink

    @property
    def active(self):
        """The active bundle: dict with 'name', 'scheme', 'resolver', 'punctuator'."""
        return self._arena.active

    @property
    def resolver(self):
        return self.active['resolver']

    @property
    def scheme(self):
        return self.active['scheme']

    def _find_table(self, filename):
        for directory in self._tables_dirs:
            path = os.path.join(directory, filename)
            if os.path.exists(path):
                return path
        logger.warning(f'Table {filename} not found in {self._tables_dirs}')
        return os.path.join(self._tables_dirs[0], filename) if self._tables_dirs else filename

    # ─── Scheme switching ───

    def set_scheme(self, name):
        """
        Switch to 'cangjie', 'zhuyin' or a schema id. Tables are loaded in
        the background; the composer is reset.
        """
        prefs = self._preferences
        phrases = PhraseDictionary(path=self._find_table(PHRASE_TABLE))
        if name == SCHEME_CANGJIE:
            dictionary = CangjieDictionary(path=self._find_table(CANGJIE_TABLE), simplified=prefs.cangjie_simplified)
            scheme = CangjieScheme(simplified=prefs.cangjie_simplified,
                                   auto_select_max_length=prefs.auto_select_max_length)
            resolver = TableResolver(dictionary, phrases, prefs)
            punctuator = punct.Punctuator()
        elif name == SCHEME_ZHUYIN:
            dictionary = ZhuyinDictionary(path=self._find_table(ZHUYIN_TABLE))
            scheme = ZhuyinScheme()
            resolver = TableResolver(dictionary, phrases, prefs)
            punctuator = punct.Punctuator()
        else:
            schema = load_schema(self._schema_source, name)
            store = MemoryStore(path=self._find_table(f'{schema.dictionary or name}.json'))
            fuzzy = rules.FuzzyRuleSet(schema.fuzzy_rules, schema.schema_id, prefs)
            scheme = SchemaScheme(schema, fuzzy)
            resolver = SchemaResolver(schema, store, fuzzy, prefs)
            punctuator = punct.Punctuator(schema.punctuator)
        return self.install(name, scheme, resolver, punctuator)

    def install(self, name, scheme, resolver, punctuator=None):
        """
        Activate an already built scheme/resolver pair.

        Returns:
            int: the arena handle of the new bundle
        """
        bundle = {
            'name': name,
            'scheme': scheme,
            'resolver': resolver,
            'punctuator': punctuator if punctuator is not None else punct.Punctuator(),
        }
        handle = self._arena.add(bundle)
        self._composer.set_scheme(scheme)
        self._composer.bind(resolver)
        self._arena.activate(handle)
        logger.info(f'Scheme switched to {name!r} (handle {handle})')
        return handle

    def set_fuzzy(self, name, enabled):
        """Toggle a named fuzzy rule group of the active schema."""
        scheme = self.scheme
        if not isinstance(scheme, SchemaScheme):
            logger.warning('Fuzzy rules are only available for schema-driven schemes')
            return False
        return scheme.fuzzy.set_enabled(name, enabled)

    # ─── Modes ───

    def set_mode(self, mode):
        '''
        Switch between Chinese and ASCII input; composing is settled first.
        '''
        if mode not in INPUT_MODE_NAMES:
            logger.warning(f'Unknown input mode: {mode}')
            return False
        if self._mode == mode:
            return False
        logger.debug(f'set_mode({mode})')
        self._composer.escape()
        self._mode = mode
        return True

    def toggle_mode(self):
        return self.set_mode(MODE_ASCII if self._mode == MODE_CHINESE else MODE_CHINESE)

    @property
    def mode(self):
        return self._mode

    # ─── Host events ───

    def focus_in(self, input_kind=INPUT_TEXT):
        self._composer.start(input_kind)

    def focus_out(self):
        self._composer.finish()

    def orientation_changed(self):
        self._composer.finish()

    def cursor_moved(self, position, expected=None):
        self._composer.on_cursor_moved(position, expected)

    # ─── Keys ───

    def process_key(self, key):
        """
        Handle one key press.

        Args:
            key: a single character, or one of the KEY_* names

        Returns:
            bool: True if the key was consumed; False means the host should
                  apply the key itself
        """
        logger.debug(f'process_key({key!r}) buffer={self._composer.buffer!r}')
        if self._mode == MODE_ASCII:
            return False

        composer = self._composer
        resolver = self.resolver
        showing = resolver.has_candidates()

        if key == KEY_RETURN:
            return composer.handle_enter()
        if key == KEY_BACKSPACE:
            if composer.delete_last():
                return True
            composer.escape()
            return False
        if key == KEY_ESCAPE:
            if composer.is_composing() or showing:
                composer.escape()
                return True
            return False
        if key == KEY_SPACE:
            return composer.handle_space()
        if key in (KEY_PAGE_UP, KEY_PAGE_DOWN):
            if not showing:
                return False
            if key == KEY_PAGE_DOWN:
                resolver.next_page()
            else:
                resolver.prev_page()
            return True
        if key in (KEY_UP, KEY_DOWN, KEY_LEFT, KEY_RIGHT):
            if not composer.is_composing():
                return False
            resolver.move_highlight(1 if key in (KEY_DOWN, KEY_RIGHT) else -1)
            return True
        if len(key) != 1:
            return False

        scheme = self.scheme
        symbol = scheme.map_key(key)
        if '1' <= key <= '9' and showing and not scheme.is_symbol(symbol, composer.buffer):
            return composer.handle_select(ord(key) - ord('1'))

        if composer.accept_symbol(symbol):
            return True
        return self._commit_punctuation(key)

    def _commit_punctuation(self, key):
        full = self._preferences.full_shape
        choices = self.active['punctuator'].query(key, full)
        composer = self._composer
        if choices:
            if len(choices) == 1:
                return composer.commit_literal(choices[0])
            if composer.is_composing() and not composer.auto_select():
                composer.escape()
            self.resolver.set_rows(Candidate(c, None, i) for i, c in enumerate(choices))
            return True
        if composer.is_composing() or full:
            return composer.commit_literal(key, full=full)
        return False

    # ─── State for the host ───

    def preedit(self):
        return self._sink.preview if isinstance(self._sink, TextBuffer) else self._composer.buffer

    def candidates(self):
        return self.resolver.page()

    def reverse_lookup(self, text):
        """Romanizations of text for schema-driven schemes, or None."""
        resolver = self.resolver
        if not isinstance(resolver, SchemaResolver):
            return None
        return resolver.get_comment(text)

    def is_ready(self):
        return not self.resolver.not_ready
