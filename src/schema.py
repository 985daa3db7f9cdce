#!/usr/bin/env python3
# schema.py - Schema documents for schema-driven input schemes

import copy
import logging
import os
import re

import rules
import util

logger = logging.getLogger(__name__)

SCHEMA_SUFFIX = '.schema.json'
DEFAULT_SCHEMA_NAME = 'default'


def merge_documents(default, active):
    """
    Merge the active schema document over the default one.

    Maps are merged key by key (recursively); any other value in the
    active document replaces the default value as a whole.
    """
    if not isinstance(default, dict) or not isinstance(active, dict):
        return copy.deepcopy(active if active is not None else default)
    merged = copy.deepcopy(default)
    for key, value in active.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = merge_documents(merged[key], value)
        else:
            merged[key] = copy.deepcopy(value)
    return merged


class Schema:
    """
    A schema document resolved into typed fields.

    The default and the active document are merged once when the schema is
    loaded; afterward the object is read-only. Keys absent from both
    documents resolve to typed empties ('' / 0 / False / None / []).

    Document layout (JSON):
        {
            "schema":     {"schema_id", "name", "version", "author", "description"},
            "speller":    {"alphabet", "initials", "delimiter", "max_code_length"},
            "translator": {"dictionary", "preedit_format", "comment_format"},
            "composer":   {"syllable", "auto_select", "spell", "lookup", "fuzzy"},
            "recognizer": {"patterns": {"reverse_lookup"}},
            "reverse_lookup": {"dictionary"},
            "punctuator": {"full_shape": {...}, "half_shape": {...}}
        }
    """

    def __init__(self, document, default_document=None):
        self._document = merge_documents(default_document or {}, document or {})

        self.schema_id = self.get_string('schema/schema_id')
        self.name = self.get_string('schema/name')
        self.version = self.get_string('schema/version')
        self.author = self.get_string('schema/author')
        self.description = self.get_string('schema/description')

        self.alphabet = self.get_string('speller/alphabet')
        self.initials = self.get_string('speller/initials')
        self.delimiter = self.get_string('speller/delimiter')
        self.max_code_length = self.get_int('speller/max_code_length')

        self.dictionary = self.get_string('translator/dictionary')
        self.preedit_rules = self.get_rules('translator/preedit_format')
        self.comment_rules = self.get_rules('translator/comment_format')

        self.syllable_pattern = self.get_pattern('composer/syllable')
        self.auto_select_pattern = self.get_pattern('composer/auto_select')
        self.spell_rules = self.get_rules('composer/spell')
        self.lookup_rules = self.get_rules('composer/lookup')
        self.fuzzy_rules = self.get_rules('composer/fuzzy', fuzzy=True)

        self.reverse_lookup_pattern = self.get_pattern('recognizer/patterns/reverse_lookup')
        self.reverse_lookup_dictionary = self.get_string('reverse_lookup/dictionary')
        self.punctuator = self.get_map('punctuator')

        logger.info(f'Schema loaded: {self.schema_id!r} ({self.title})')

    def get_value(self, path):
        """
        Return the value at a '/'-separated path, or None.
        """
        node = self._document
        for key in path.split('/'):
            if not isinstance(node, dict) or key not in node:
                return None
            node = node[key]
        return node

    def _get_typed(self, path, expected, default):
        value = self.get_value(path)
        if value is None:
            logger.debug(f'Schema key "{path}" not set, using {default!r}')
            return default
        if not isinstance(value, expected) or (expected is int and isinstance(value, bool)):
            logger.warning(f'Schema key "{path}" has unexpected type {type(value).__name__}, using {default!r}')
            return default
        return value

    def get_int(self, path):
        return self._get_typed(path, int, 0)

    def get_string(self, path):
        return self._get_typed(path, str, '')

    def get_list(self, path):
        return self._get_typed(path, list, [])

    def get_map(self, path):
        return self._get_typed(path, dict, {})

    def get_pattern(self, path):
        """Return the compiled regular expression at path, or None."""
        source = self.get_string(path)
        if not source:
            return None
        try:
            return re.compile(source)
        except re.error as e:
            logger.error(f'Invalid pattern for schema key "{path}": {e}')
            return None

    def get_rules(self, path, fuzzy=False):
        return rules.compile_rules(self.get_list(path), fuzzy=fuzzy)

    @property
    def title(self):
        return f'{self.name} {self.version}'.strip()

    @property
    def info(self):
        return [s for s in (self.author, self.description) if s]

    @property
    def delimiter_char(self):
        return self.delimiter[:1]

    def has_delimiter(self):
        return bool(self.delimiter)

    def is_delimiter(self, text):
        """A delimiter key is any non-space character listed in speller/delimiter."""
        return bool(text) and self.has_delimiter() and text[0] != ' ' and text in self.delimiter

    def preedit(self, text):
        return rules.translate(text, self.preedit_rules)

    def comment(self, text):
        return rules.translate(text, self.comment_rules)

    def is_auto_select(self, text):
        return self.auto_select_pattern is not None and self.auto_select_pattern.fullmatch(text) is not None

    def is_reverse_lookup(self, text):
        return self.reverse_lookup_pattern is not None and self.reverse_lookup_pattern.fullmatch(text) is not None

    def reverse_lookup_code(self, text):
        """The alphabet characters of a reverse-lookup buffer, without its prefix and delimiters."""
        return ''.join(c for c in text if c in self.alphabet)


def default_schema_dirs():
    """User schema directory first, then the packaged schemas."""
    return [util.get_user_schema_dir(), os.path.join(util.get_datadir(), 'schemas'), util.get_datadir()]


class JsonSchemaSource:
    """
    Loads schema documents stored as '<schema_id>.schema.json'.

    The user schema directory is searched before the packaged data directory,
    so a user file overrides the shipped one with the same id.
    """

    def __init__(self, directories=None):
        if directories is None:
            directories = default_schema_dirs()
        self._directories = list(directories)

    def _find(self, schema_id):
        filename = f'{schema_id}{SCHEMA_SUFFIX}'
        for directory in self._directories:
            path = os.path.join(directory, filename)
            if os.path.exists(path):
                return path
        return None

    def load(self, schema_id):
        """
        Return the document for schema_id, or an empty dict if it cannot be read.
        """
        path = self._find(schema_id)
        if path is None:
            logger.warning(f'Schema "{schema_id}" not found in {self._directories}')
            return {}
        document = util.load_json_file(path)
        if not isinstance(document, dict):
            logger.error(f'Schema file is not a JSON object: {path}')
            return {}
        return document

    def load_default(self):
        return self.load(DEFAULT_SCHEMA_NAME)

    def list_schemas(self):
        """Return the ids of every available schema (the default excluded), sorted."""
        found = set()
        for directory in self._directories:
            if not os.path.isdir(directory):
                continue
            for filename in os.listdir(directory):
                if filename.endswith(SCHEMA_SUFFIX):
                    found.add(filename[:-len(SCHEMA_SUFFIX)])
        found.discard(DEFAULT_SCHEMA_NAME)
        return sorted(found)


def load_schema(source, schema_id):
    """
    Load schema_id from source, merged over the source's default document.

    Returns:
        Schema: typed schema; a schema that could not be read resolves to
                the default document alone
    """
    document = source.load(schema_id)
    default_document = source.load_default() if hasattr(source, 'load_default') else {}
    schema = Schema(document, default_document)
    if not schema.schema_id:
        schema.schema_id = str(schema_id)
    return schema
