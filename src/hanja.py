#!/usr/bin/env python3
# hanja.py - Hanja dictionary tables and lookup-key construction

from collections import namedtuple
from enum import Enum
import logging
import os

import orjson

logger = logging.getLogger(__name__)

DEFAULT_HANJA_TABLE_PATH = '/usr/share/libhangul/hanja/hanja.txt'

# number of characters of host text (before the cursor) considered for a lookup
LOOKUP_WINDOW = 64


class LookupMethod(Enum):
    PREFIX = 'prefix'
    EXACT = 'exact'
    SUFFIX = 'suffix'


Hanja = namedtuple('Hanja', ['key', 'value', 'comment'])

SurroundingText = namedtuple('SurroundingText', ['text', 'cursor', 'anchor', 'valid'])


class HanjaList:
    """
    Ordered result of one dictionary lookup.

    `key` is the text the lookup was made with; each entry carries its own
    key, which is the span of that text it actually matched.
    """

    def __init__(self, key, entries=None):
        self.key = key
        self._entries = list(entries) if entries else []

    def __len__(self):
        return len(self._entries)

    def __iter__(self):
        return iter(self._entries)

    def __repr__(self):
        return f'HanjaList({self.key!r}, {len(self._entries)} entries)'

    def get_size(self):
        return len(self._entries)

    def get_nth(self, n):
        if 0 <= n < len(self._entries):
            return self._entries[n]
        return None

    def get_nth_key(self, n):
        entry = self.get_nth(n)
        return entry.key if entry else None

    def get_nth_value(self, n):
        entry = self.get_nth(n)
        return entry.value if entry else None

    def get_nth_comment(self, n):
        entry = self.get_nth(n)
        return entry.comment if entry else None


class HanjaTable:
    '''
    Read-only mapping from a Hangul key to its Hanja entries,
    kept in dictionary order.
    '''

    def __init__(self, entries=None):
        self._table = dict()
        self._max_key_length = 0
        for entry in entries or ():
            self.add(entry)

    def __len__(self):
        return sum(len(v) for v in self._table.values())

    def add(self, entry):
        self._table.setdefault(entry.key, []).append(entry)
        self._max_key_length = max(self._max_key_length, len(entry.key))

    def match_exact(self, key):
        entries = self._table.get(key)
        if not entries:
            return None
        return HanjaList(key, entries)

    def match_prefix(self, key):
        """
        Entries of `key` and of every shorter leading substring of it,
        longest first: "대한민국" looks up "대한민국", "대한민", "대한", "대".
        """
        entries = []
        for end in range(min(len(key), self._max_key_length), 0, -1):
            entries.extend(self._table.get(key[:end], ()))
        if not entries:
            return None
        return HanjaList(key, entries)

    def match_suffix(self, key):
        """
        Entries of `key` and of every shorter trailing substring of it,
        longest first: "대한민국" looks up "대한민국", "한민국", "민국", "국".
        """
        entries = []
        start = max(0, len(key) - self._max_key_length)
        for begin in range(start, len(key)):
            entries.extend(self._table.get(key[begin:], ()))
        if not entries:
            return None
        return HanjaList(key, entries)

    def match(self, key, method):
        if method == LookupMethod.EXACT:
            return self.match_exact(key)
        if method == LookupMethod.PREFIX:
            return self.match_prefix(key)
        return self.match_suffix(key)


def _parse_text_table(f, path):
    entries = []
    for number, line in enumerate(f, 1):
        line = line.rstrip('\r\n')
        if not line or line.startswith('#'):
            continue
        fields = line.split(':', 2)
        if len(fields) < 2 or not fields[0] or not fields[1]:
            logger.debug(f'{path}:{number}: skipping malformed line "{line}"')
            continue
        comment = fields[2] if len(fields) == 3 else ''
        entries.append(Hanja(fields[0], fields[1], comment))
    return entries


def _parse_json_table(data, path):
    entries = []
    if not isinstance(data, dict):
        logger.warning(f'Invalid hanja table format (expected dict): {path}')
        return entries
    for key, values in data.items():
        if not isinstance(values, list):
            continue
        for value in values:
            if isinstance(value, str):
                entries.append(Hanja(key, value, ''))
            elif isinstance(value, list) and len(value) == 2:
                entries.append(Hanja(key, str(value[0]), str(value[1])))
    return entries


def load_table(path=None):
    """
    Load a hanja table from `path` (the system hanja.txt when None).

    Files ending in ".json" are read as {"key": ["value", ["value", "comment"]]};
    anything else as libhangul's "key:value:comment" text format.

    Returns:
        HanjaTable, or None when the file is missing or cannot be decoded
    """
    if path is None:
        path = DEFAULT_HANJA_TABLE_PATH
    if not os.path.exists(path):
        logger.warning(f'Hanja table not found: {path}')
        return None
    try:
        if path.endswith('.json'):
            with open(path, 'rb') as f:
                entries = _parse_json_table(orjson.loads(f.read()), path)
        else:
            with open(path, encoding='utf-8') as f:
                entries = _parse_text_table(f, path)
    except orjson.JSONDecodeError as e:
        logger.error(f'Failed to parse hanja table JSON: {path} - {e}')
        return None
    except (OSError, UnicodeDecodeError) as e:
        logger.error(f'Failed to load hanja table: {path} - {e}')
        return None
    logger.info(f'Loaded hanja table: {path} ({len(entries)} entries)')
    return HanjaTable(entries)


def lookup_table(key, method, table, symbol_table=None):
    '''
    Look `key` up with `method`, in the symbol table first and then in
    the main table.

    Returns:
        None for an empty key; otherwise a HanjaList, empty when neither
        table matched
    '''
    if not key:
        return None
    result = None
    if symbol_table is not None:
        result = symbol_table.match(key, method)
    if result is None:
        result = table.match(key, method)
    if result is None:
        result = HanjaList(key)
    logger.debug(f'lookup_table("{key}", {method.name}) -> {len(result)} entries')
    return result


def substring(text, p1, p2):
    """Characters between two positions, in either order; negative positions count as 0."""
    if not text:
        return ''
    p1 = max(0, p1)
    p2 = max(0, p2)
    begin = min(p1, p2)
    return text[begin:begin + abs(p2 - p1)]


def build_lookup_key(buffer_text, composing_text, surrounding, check_surrounding, deferred_commit):
    """
    Decide what to look up and how.

    Args:
        buffer_text: decided text not yet committed to the host
        composing_text: the syllable under composition
        surrounding: SurroundingText, or None when the host does not
                     support surrounding text
        check_surrounding: whether host text alone may form the key
        deferred_commit: word-commit or hanja mode is on

    Returns:
        (key, LookupMethod), or None when there is nothing to look up
    """
    local_text = buffer_text + composing_text
    if local_text:
        if deferred_commit:
            return local_text, LookupMethod.PREFIX
        before = ''
        if surrounding is not None and surrounding.valid:
            before = substring(surrounding.text, surrounding.cursor - LOOKUP_WINDOW, surrounding.cursor)
        return before + local_text, LookupMethod.SUFFIX
    if not check_surrounding:
        return None
    if surrounding is None or not surrounding.valid:
        return None
    if surrounding.cursor != surrounding.anchor:
        key = substring(surrounding.text, surrounding.cursor, surrounding.anchor)
        method = LookupMethod.EXACT
    else:
        key = substring(surrounding.text, surrounding.cursor - LOOKUP_WINDOW, surrounding.cursor)
        method = LookupMethod.SUFFIX
    if not key:
        return None
    return key, method
