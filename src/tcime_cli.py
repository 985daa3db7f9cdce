#!/usr/bin/env python3
"""
tcime_cli.py - Command-line interface for inspecting encoders, rules and lookups

================================================================================
OVERVIEW
================================================================================

Developer tool to exercise the input core without an input-method host:

    1. Show the cangjie table indices of a code
    2. Show the zhuyin syllable index and slot decomposition
    3. Run a schema's lookup rules and fuzzy expansion over a key
    4. Resolve a code against a table or a schema store
    5. Feed a key sequence through the engine and print what gets committed

================================================================================
USAGE
================================================================================

    # Cangjie indices (letters or QWERTY keys)
    python tcime_cli.py encode 日月金
    python tcime_cli.py encode abc --keys

    # Zhuyin syllable
    python tcime_cli.py zhuyin ㄅㄨㄚˋ

    # Lookup key of a schema with the 'zh' fuzzy group switched on
    python tcime_cli.py expand luna_pinyin zi --fuzzy zh

    # First page of candidates
    python tcime_cli.py lookup cangjie abc --keys

    # Type keys; special keys in angle brackets
    python tcime_cli.py type luna_pinyin "ni<space>hao<space>"

================================================================================
"""

import argparse
import logging
import os
import re
import sys

# Add src directory to path if needed
src_dir = os.path.dirname(os.path.abspath(__file__))
if src_dir not in sys.path:
    sys.path.insert(0, src_dir)

from candidates import SchemaResolver
import code_table
import engine
import rules
from schema import JsonSchemaSource, default_schema_dirs, load_schema
import schemes
import syllable
import util

KEY_TOKEN = re.compile(r'<([A-Za-z_]+)>|(.)', re.DOTALL)


def setup_logging(verbose=False):
    """Configure logging based on verbosity level."""
    level = logging.DEBUG if verbose else logging.WARNING
    logging.basicConfig(
        level=level,
        format='%(asctime)s %(levelname)-8s %(message)s',
        datefmt='%H:%M:%S'
    )


def split_keys(text):
    """
    Split a key sequence into keys; '<name>' stands for a named key.
    e.g. 'ni<space>' -> ['n', 'i', 'space']
    """
    return [name or char for name, char in KEY_TOKEN.findall(text)]


def _schema_source(args):
    if args.schema_dir:
        return JsonSchemaSource([args.schema_dir] + default_schema_dirs())
    return JsonSchemaSource()


def _make_engine(args):
    config = util.get_default_config_data() or {}
    tables_dirs = [args.tables_dir] if args.tables_dir else None
    return engine.EngineTCIME(config=config, schema_source=_schema_source(args),
                              tables_dirs=tables_dirs, scheme=args.scheme)


def cmd_encode(args):
    """Print the primary and secondary index of a cangjie code."""
    code = args.code
    if args.keys:
        code = ''.join(schemes.CANGJIE_KEYMAP.get(k, k) for k in code)
    primary = code_table.primary_index(code)
    secondary = code_table.secondary_index(code)
    print(f"Code:      {code}")
    print(f"Primary:   {primary}")
    print(f"Secondary: {secondary}")
    if primary < 0 or secondary < 0:
        print("ERROR: invalid cangjie code")
        return 1
    return 0


def cmd_zhuyin(args):
    """Print the table index and slot decomposition of a zhuyin syllable."""
    text = args.text
    if args.keys:
        scheme = schemes.ZhuyinScheme()
        text = ''.join(scheme.map_key(k) for k in text)
    pair = syllable.strip_tones(text)
    if pair is None:
        print("ERROR: no syllable to encode")
        return 1
    syllables, tone = pair
    index = syllable.get_syllables_index(syllables)
    slots = syllable.decompose(text)
    print(f"Syllable:  {syllables}")
    print(f"Tone:      {syllable.get_tones(tone)} ({tone!r})")
    print(f"Index:     {index}")
    print(f"Slots:     {slots}")
    return 0 if index >= 0 else 1


def cmd_expand(args):
    """Print the lookup key a schema builds for the given input."""
    schema = load_schema(_schema_source(args), args.schema)
    fuzzy = rules.FuzzyRuleSet(schema.fuzzy_rules, schema.schema_id)
    for name in args.fuzzy or []:
        if not fuzzy.set_enabled(name, True):
            print(f"ERROR: unknown fuzzy group {name!r} (available: {', '.join(fuzzy.names) or 'none'})")
            return 1
    resolver = SchemaResolver(schema, None, fuzzy)
    print(f"Lookup:    {rules.translate(args.text, schema.lookup_rules)}")
    print(f"Expanded:  {resolver.lookup_key(args.text)}")
    print(f"Preedit:   {schema.preedit(args.text)}")
    return 0


def _print_page(eng):
    resolver = eng.resolver
    page = resolver.page()
    if not page:
        print("(no candidates)" if not resolver.not_ready else "(dictionary not ready)")
        return
    for i, candidate in enumerate(page):
        comment = f"  {candidate.comment}" if candidate.comment else ""
        print(f"  {i + 1}. {candidate.text}{comment}")
    if not resolver.is_last_page():
        print("  ...")


def cmd_lookup(args):
    """Resolve a code and print the first page of candidates."""
    eng = _make_engine(args)
    code = args.code
    if args.keys:
        code = ''.join(eng.scheme.map_key(k) for k in code)
    eng.resolver.query(code)
    print(f"Candidates for {code}:")
    _print_page(eng)
    return 0


def cmd_type(args):
    """Feed keys through the engine; print the committed text and the final state."""
    eng = _make_engine(args)
    eng.focus_in()
    for key in split_keys(args.keys):
        consumed = eng.process_key(key)
        if not consumed and len(key) == 1:
            eng.sink.commit(key)
        if args.verbose:
            print(f"  {key!r}: consumed={consumed} preedit={eng.preedit()!r}")
    print(f"Committed: {eng.sink.text}")
    print(f"Preedit:   {eng.preedit()}")
    if eng.resolver.has_candidates():
        _print_page(eng)
    return 0


def main():
    """Main entry point for CLI."""
    parser = argparse.ArgumentParser(
        description="Chinese input core: encoders, rules and candidate lookup",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python tcime_cli.py encode 日月金
  python tcime_cli.py zhuyin ㄅㄨㄚˋ
  python tcime_cli.py expand luna_pinyin zi --fuzzy zh
  python tcime_cli.py lookup cangjie abc --keys
  python tcime_cli.py type luna_pinyin "ni<space>"
"""
    )

    parser.add_argument('-v', '--verbose', action='store_true',
                        help='Enable verbose output')

    subparsers = parser.add_subparsers(dest='command', help='Available commands')

    encode_parser = subparsers.add_parser('encode', help='Show cangjie table indices')
    encode_parser.add_argument('code', help='Cangjie code')
    encode_parser.add_argument('-k', '--keys', action='store_true', help='Read the code as QWERTY keys')

    zhuyin_parser = subparsers.add_parser('zhuyin', help='Show zhuyin syllable index and slots')
    zhuyin_parser.add_argument('text', help='Zhuyin syllable, optionally with a tone mark')
    zhuyin_parser.add_argument('-k', '--keys', action='store_true', help='Read the text as keyboard keys')

    expand_parser = subparsers.add_parser('expand', help='Apply lookup rules and fuzzy expansion')
    expand_parser.add_argument('schema', help='Schema id')
    expand_parser.add_argument('text', help='Input to expand')
    expand_parser.add_argument('-f', '--fuzzy', action='append', help='Enable a fuzzy group (repeatable)')
    expand_parser.add_argument('--schema-dir', help='Extra directory with *.schema.json files')

    for name, help_text in (('lookup', 'Print the first page of candidates'),
                            ('type', 'Feed keys through the engine')):
        sub = subparsers.add_parser(name, help=help_text)
        sub.add_argument('scheme', help="'cangjie', 'zhuyin' or a schema id")
        sub.add_argument('code' if name == 'lookup' else 'keys', help='Code to resolve' if name == 'lookup' else 'Keys to type')
        sub.add_argument('--tables-dir', help='Directory with table JSON files')
        sub.add_argument('--schema-dir', help='Extra directory with *.schema.json files')
        if name == 'lookup':
            sub.add_argument('-k', '--keys', action='store_true', help='Map keyboard keys to scheme symbols')

    args = parser.parse_args()

    if not args.command:
        parser.print_help()
        return 1

    setup_logging(args.verbose)

    # Dispatch to command handler
    if args.command == 'encode':
        return cmd_encode(args)
    elif args.command == 'zhuyin':
        return cmd_zhuyin(args)
    elif args.command == 'expand':
        return cmd_expand(args)
    elif args.command == 'lookup':
        return cmd_lookup(args)
    elif args.command == 'type':
        return cmd_type(args)
    else:
        parser.print_help()
        return 1


if __name__ == "__main__":
    sys.exit(main())
