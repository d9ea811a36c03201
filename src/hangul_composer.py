#!/usr/bin/env python3
"""
hangul_composer.py - Hangul composition automaton

================================================================================
HOW A HANGUL SYLLABLE IS BUILT
================================================================================

A Hangul syllable block is made of up to three jamo:

    ┌───────────────┬────────────────┬─────────────────┐
    │  choseong     │  jungseong     │  jongseong      │
    │  (leading     │  (vowel)       │  (trailing      │
    │   consonant)  │                │   consonant)    │
    └───────────────┴────────────────┴─────────────────┘
         ㅎ          +      ㅏ        +       ㄴ         =   한

The composed syllable is computed arithmetically:

    0xAC00 + (choseong_index * 21 + jungseong_index) * 28 + jongseong_index

where jongseong_index is 0 when the syllable has no trailing consonant.

================================================================================
KEYBOARD TYPES
================================================================================

    JAMO keyboards (Dubeolsik "2"):
        Keys produce only leading consonants and vowels. Whether a consonant
        ends the current syllable or starts the next one is decided later:
        "gksr" + "k" → 한 + 가 (ㄱ moves to the next syllable when a vowel
        follows).

    JASO keyboards (Sebeolsik 390 "39", Final "3f", Noshift "3s"):
        Leading and trailing consonants are on separate keys, so every key
        goes straight into its slot.

    ROMAJA keyboard ("ro"):
        Latin transcription. Composed like a JAMO keyboard, with vowel
        letters combining ("e" + "o" → ㅓ, "y" + "a" → ㅑ) and a silent ㅇ
        put in front of a syllable that starts with a vowel:
        "hangeul" → 한글, "ae" → 애.

================================================================================
TRANSITION VALIDATION
================================================================================

Before a jamo is pushed into the current syllable the composer asks its
validator (if any). A refused jamo commits the current syllable and is
retried on an empty one. With no validator the composer reorders freely
(typing ㅏ then ㄱ produces 가).
================================================================================
"""

import logging

logger = logging.getLogger(__name__)

SYLLABLE_BASE = 0xAC00
CHOSEONG_FIRST, CHOSEONG_LAST = 0x1100, 0x1112
JUNGSEONG_FIRST, JUNGSEONG_LAST = 0x1161, 0x1175
JONGSEONG_FIRST, JONGSEONG_LAST = 0x11A8, 0x11C2
JUNGSEONG_COUNT = 21
JONGSEONG_COUNT = 28  # including "no trailing consonant"

KEYBOARD_TYPE_JAMO = 'jamo'
KEYBOARD_TYPE_JASO = 'jaso'
KEYBOARD_TYPE_ROMAJA = 'romaja'

CHOSEONG_IEUNG = 0x110B

# ㄱ ㄲ ㄴ ㄷ ㄸ ㄹ ㅁ ㅂ ㅃ ㅅ ㅆ ㅇ ㅈ ㅉ ㅊ ㅋ ㅌ ㅍ ㅎ
_COMPAT_CHOSEONG = (
    0x3131, 0x3132, 0x3134, 0x3137, 0x3138, 0x3139, 0x3141, 0x3142, 0x3143,
    0x3145, 0x3146, 0x3147, 0x3148, 0x3149, 0x314A, 0x314B, 0x314C, 0x314D, 0x314E,
)
# ㄱ ㄲ ㄳ ㄴ ㄵ ㄶ ㄷ ㄹ ㄺ ㄻ ㄼ ㄽ ㄾ ㄿ ㅀ ㅁ ㅂ ㅄ ㅅ ㅆ ㅇ ㅈ ㅊ ㅋ ㅌ ㅍ ㅎ
_COMPAT_JONGSEONG = (
    0x3131, 0x3132, 0x3133, 0x3134, 0x3135, 0x3136, 0x3137, 0x3139, 0x313A,
    0x313B, 0x313C, 0x313D, 0x313E, 0x313F, 0x3140, 0x3141, 0x3142, 0x3144,
    0x3145, 0x3146, 0x3147, 0x3148, 0x314A, 0x314B, 0x314C, 0x314D, 0x314E,
)
_COMPAT_JUNGSEONG_FIRST = 0x314F

_CHOSEONG_TO_JONGSEONG = {
    0x1100: 0x11A8,  # ㄱ
    0x1101: 0x11A9,  # ㄲ
    0x1102: 0x11AB,  # ㄴ
    0x1103: 0x11AE,  # ㄷ
    0x1105: 0x11AF,  # ㄹ
    0x1106: 0x11B7,  # ㅁ
    0x1107: 0x11B8,  # ㅂ
    0x1109: 0x11BA,  # ㅅ
    0x110A: 0x11BB,  # ㅆ
    0x110B: 0x11BC,  # ㅇ
    0x110C: 0x11BD,  # ㅈ
    0x110E: 0x11BE,  # ㅊ
    0x110F: 0x11BF,  # ㅋ
    0x1110: 0x11C0,  # ㅌ
    0x1111: 0x11C1,  # ㅍ
    0x1112: 0x11C2,  # ㅎ
}
_JONGSEONG_TO_CHOSEONG = {jong: cho for cho, jong in _CHOSEONG_TO_JONGSEONG.items()}

_VOWEL_COMBINATIONS = {
    (0x1169, 0x1161): 0x116A,  # ㅗ + ㅏ = ㅘ
    (0x1169, 0x1162): 0x116B,  # ㅗ + ㅐ = ㅙ
    (0x1169, 0x1175): 0x116C,  # ㅗ + ㅣ = ㅚ
    (0x116E, 0x1165): 0x116F,  # ㅜ + ㅓ = ㅝ
    (0x116E, 0x1166): 0x1170,  # ㅜ + ㅔ = ㅞ
    (0x116E, 0x1175): 0x1171,  # ㅜ + ㅣ = ㅟ
    (0x1173, 0x1175): 0x1174,  # ㅡ + ㅣ = ㅢ
}
_JONGSEONG_COMBINATIONS = {
    (0x11A8, 0x11BA): 0x11AA,  # ㄳ
    (0x11AB, 0x11BD): 0x11AC,  # ㄵ
    (0x11AB, 0x11C2): 0x11AD,  # ㄶ
    (0x11AF, 0x11A8): 0x11B0,  # ㄺ
    (0x11AF, 0x11B7): 0x11B1,  # ㄻ
    (0x11AF, 0x11B8): 0x11B2,  # ㄼ
    (0x11AF, 0x11BA): 0x11B3,  # ㄽ
    (0x11AF, 0x11C0): 0x11B4,  # ㄾ
    (0x11AF, 0x11C1): 0x11B5,  # ㄿ
    (0x11AF, 0x11C2): 0x11B6,  # ㅀ
    (0x11B8, 0x11BA): 0x11B9,  # ㅄ
}
_DOUBLE_CHOSEONG = {
    (0x1100, 0x1100): 0x1101,  # ㄲ
    (0x1103, 0x1103): 0x1104,  # ㄸ
    (0x1107, 0x1107): 0x1108,  # ㅃ
    (0x1109, 0x1109): 0x110A,  # ㅆ
    (0x110C, 0x110C): 0x110D,  # ㅉ
}
_DOUBLE_JONGSEONG = {
    (0x11A8, 0x11A8): 0x11A9,  # ㄲ
    (0x11BA, 0x11BA): 0x11BB,  # ㅆ
}

COMBINATION_DEFAULT = dict(_VOWEL_COMBINATIONS)
COMBINATION_DEFAULT.update(_JONGSEONG_COMBINATIONS)

COMBINATION_FULL = dict(COMBINATION_DEFAULT)
COMBINATION_FULL.update(_DOUBLE_CHOSEONG)
COMBINATION_FULL.update(_DOUBLE_JONGSEONG)


def is_choseong(c):
    return CHOSEONG_FIRST <= c <= CHOSEONG_LAST


def is_jungseong(c):
    return JUNGSEONG_FIRST <= c <= JUNGSEONG_LAST


def is_jongseong(c):
    return JONGSEONG_FIRST <= c <= JONGSEONG_LAST


def is_jamo(c):
    return is_choseong(c) or is_jungseong(c) or is_jongseong(c)


def choseong_to_jongseong(c):
    return _CHOSEONG_TO_JONGSEONG.get(c, 0)


def jongseong_to_choseong(c):
    return _JONGSEONG_TO_CHOSEONG.get(c, 0)


def to_compatibility_jamo(c):
    """Map a conjoining jamo (U+11xx) to its standalone form (U+31xx)."""
    if is_choseong(c):
        return _COMPAT_CHOSEONG[c - CHOSEONG_FIRST]
    if is_jungseong(c):
        return _COMPAT_JUNGSEONG_FIRST + (c - JUNGSEONG_FIRST)
    if is_jongseong(c):
        return _COMPAT_JONGSEONG[c - JONGSEONG_FIRST]
    return c


def jamos_to_string(choseong, jungseong, jongseong):
    """
    Render one syllable slot set as text.

    A leading consonant with a vowel becomes a precomposed syllable;
    anything incomplete is rendered as standalone compatibility jamo.
    """
    if choseong and jungseong:
        jong_index = jongseong - JONGSEONG_FIRST + 1 if jongseong else 0
        code = (SYLLABLE_BASE
                + ((choseong - CHOSEONG_FIRST) * JUNGSEONG_COUNT + (jungseong - JUNGSEONG_FIRST)) * JONGSEONG_COUNT
                + jong_index)
        return chr(code)
    return ''.join(chr(to_compatibility_jamo(c)) for c in (choseong, jungseong, jongseong) if c)


class Keyboard:
    '''
    A keyboard layout: printable ASCII → jamo (or another character).
    '''

    def __init__(self, keyboard_id, name, keyboard_type, table, combination):
        self.id = keyboard_id
        self.name = name
        self.type = keyboard_type
        self._table = table
        self.combination = combination

    def mapping(self, ascii):
        """
        Returns:
            int: code point for the key, 0 when the key is not on this keyboard
        """
        if ascii < 0 or ascii >= 0x80:
            return 0
        return self._table.get(chr(ascii), 0)

    def combine(self, first, second):
        return self.combination.get((first, second), 0)

    def split(self, combined):
        for pair, value in self.combination.items():
            # pairs that absorb their second jamo (romaja "ch") are not clusters
            if value == combined and pair[0] != combined:
                return pair
        return combined, 0


_DUBEOLSIK_TABLE = {
    'q': 0x1107, 'Q': 0x1108,  # ㅂ ㅃ
    'w': 0x110C, 'W': 0x110D,  # ㅈ ㅉ
    'e': 0x1103, 'E': 0x1104,  # ㄷ ㄸ
    'r': 0x1100, 'R': 0x1101,  # ㄱ ㄲ
    't': 0x1109, 'T': 0x110A,  # ㅅ ㅆ
    'y': 0x116D,               # ㅛ
    'u': 0x1167,               # ㅕ
    'i': 0x1163,               # ㅑ
    'o': 0x1162, 'O': 0x1164,  # ㅐ ㅒ
    'p': 0x1166, 'P': 0x1168,  # ㅔ ㅖ
    'a': 0x1106,               # ㅁ
    's': 0x1102,               # ㄴ
    'd': 0x110B,               # ㅇ
    'f': 0x1105,               # ㄹ
    'g': 0x1112,               # ㅎ
    'h': 0x1169,               # ㅗ
    'j': 0x1165,               # ㅓ
    'k': 0x1161,               # ㅏ
    'l': 0x1175,               # ㅣ
    'z': 0x110F,               # ㅋ
    'x': 0x1110,               # ㅌ
    'c': 0x110E,               # ㅊ
    'v': 0x1111,               # ㅍ
    'b': 0x1172,               # ㅠ
    'n': 0x116E,               # ㅜ
    'm': 0x1173,               # ㅡ
}
# shifted letters without a tense/second jamo type the plain one
for _c in 'yuiasdfghjklzxcvbnm':
    _DUBEOLSIK_TABLE[_c.upper()] = _DUBEOLSIK_TABLE[_c]

# unshifted jamo keys shared by the 3-set keyboards
_SEBEOLSIK_BASE_TABLE = {
    '1': 0x11C2, '2': 0x11BB, '3': 0x11B8,                # jong ㅎ ㅆ ㅂ
    '4': 0x116D, '5': 0x1172, '6': 0x1163, '7': 0x1168,   # ㅛ ㅠ ㅑ ㅖ
    '8': 0x1174, '9': 0x116E,                             # ㅢ ㅜ
    '0': 0x110F,                                          # cho ㅋ
    'q': 0x11BA, 'w': 0x11AF,                             # jong ㅅ ㄹ
    'e': 0x1167, 'r': 0x1162, 't': 0x1165,                # ㅕ ㅐ ㅓ
    'y': 0x1105, 'u': 0x1103, 'i': 0x1106, 'o': 0x110E, 'p': 0x1111,  # cho ㄹ ㄷ ㅁ ㅊ ㅍ
    'a': 0x11BC, 's': 0x11AB,                             # jong ㅇ ㄴ
    'd': 0x1175, 'f': 0x1161, 'g': 0x1173,                # ㅣ ㅏ ㅡ
    'h': 0x1102, 'j': 0x110B, 'k': 0x1100, 'l': 0x110C,   # cho ㄴ ㅇ ㄱ ㅈ
    ';': 0x1107, "'": 0x1110,                             # cho ㅂ ㅌ
    'z': 0x11B7, 'x': 0x11A8,                             # jong ㅁ ㄱ
    'c': 0x1166, 'v': 0x1169, 'b': 0x116E,                # ㅔ ㅗ ㅜ
    'n': 0x1109, 'm': 0x1112,                             # cho ㅅ ㅎ
    '/': 0x1169,                                          # ㅗ (for ㅘ ㅙ ㅚ)
}

_SEBEOLSIK_390_TABLE = dict(_SEBEOLSIK_BASE_TABLE)
_SEBEOLSIK_390_TABLE.update({
    ',': ord(','), '.': ord('.'),
    # shifted layer: trailing consonants and ㅒ
    '!': 0x11A9,                                          # jong ㄲ
    'Q': 0x11C1, 'W': 0x11C0,                             # jong ㅍ ㅌ
    'R': 0x1164,                                          # ㅒ
    'A': 0x11AE,                                          # jong ㄷ
    'Z': 0x11BE, 'X': 0x11B9,                             # jong ㅊ ㅄ
})

_SEBEOLSIK_FINAL_TABLE = dict(_SEBEOLSIK_BASE_TABLE)
_SEBEOLSIK_FINAL_TABLE.update({
    # shifted layer: trailing consonant clusters, ㅒ, digits and symbols
    '!': 0x11A9, '@': 0x11B0, '#': 0x11BD,                # jong ㄲ ㄺ ㅈ
    '$': 0x11B5, '%': 0x11B4,                             # jong ㄿ ㄾ
    'Q': 0x11C1, 'W': 0x11C0, 'E': 0x11AC,                # jong ㅍ ㅌ ㄵ
    'R': 0x11B6, 'T': 0x11B3,                             # jong ㅀ ㄽ
    'A': 0x11AE, 'S': 0x11AD, 'D': 0x11B2, 'F': 0x11B1,   # jong ㄷ ㄶ ㄼ ㄻ
    'G': 0x1164,                                          # ㅒ
    'Z': 0x11BE, 'X': 0x11B9, 'C': 0x11BF, 'V': 0x11AA,   # jong ㅊ ㅄ ㅋ ㄳ
    'Y': ord('5'), 'U': ord('6'), 'I': ord('7'), 'O': ord('8'), 'P': ord('9'),
    'H': ord('0'), 'J': ord('1'), 'K': ord('2'), 'L': ord('3'), ':': ord('4'),
    'B': ord('?'), 'N': ord('-'), 'M': ord('"'),
    '-': ord(')'), '(': ord("'"), ')': ord('~'), '[': ord('('), ']': ord('<'),
    '{': ord('%'), '}': ord('/'), '\\': ord(':'), '|': ord('\\'),
    '=': ord('>'), '^': ord('='), '_': ord(';'), '`': ord('*'), '?': ord('!'),
    '<': ord(','), '>': ord('.'), ',': ord(','), '.': ord('.'),
    '"': 0x00B7, '&': 0x201C, '*': 0x201D, '~': 0x203B,  # · “ ” ※
})

_SEBEOLSIK_NOSHIFT_TABLE = dict(_SEBEOLSIK_BASE_TABLE)
_SEBEOLSIK_NOSHIFT_TABLE.update({
    # trailing consonants of the shifted layer moved onto punctuation keys
    '-': 0x11BD, '=': 0x11BE,                             # jong ㅈ ㅊ
    '[': 0x11C1, ']': 0x11C0, '\\': 0x11BF,               # jong ㅍ ㅌ ㅋ
    '`': 0x11AE,                                          # jong ㄷ
    ',': ord(','), '.': ord('.'),
})
_NOSHIFT_COMBINATION = dict(COMBINATION_FULL)
_NOSHIFT_COMBINATION[(0x1163, 0x1175)] = 0x1164  # ㅑ + ㅣ = ㅒ
# Shift changes nothing
for _c in 'qwertyuiopasdfghjklzxcvbnm':
    _SEBEOLSIK_NOSHIFT_TABLE[_c.upper()] = _SEBEOLSIK_NOSHIFT_TABLE[_c]

_ROMAJA_TABLE = {
    'a': 0x1161, 'e': 0x1166, 'i': 0x1175, 'o': 0x1169, 'u': 0x116E,  # ㅏ ㅔ ㅣ ㅗ ㅜ
    'w': 0x116E, 'y': 0x1175,                             # ㅜ ㅣ (semivowels)
    'g': 0x1100, 'k': 0x110F, 'q': 0x110F,                # ㄱ ㅋ ㅋ
    'n': 0x1102, 'd': 0x1103, 't': 0x1110,                # ㄴ ㄷ ㅌ
    'r': 0x1105, 'l': 0x1105, 'm': 0x1106,                # ㄹ ㄹ ㅁ
    'b': 0x1107, 'v': 0x1107, 'p': 0x1111, 'f': 0x1111,   # ㅂ ㅂ ㅍ ㅍ
    's': 0x1109, 'j': 0x110C, 'z': 0x110C,                # ㅅ ㅈ ㅈ
    'c': 0x110E, 'h': 0x1112,                             # ㅊ ㅎ
}
for _c in list(_ROMAJA_TABLE):
    _ROMAJA_TABLE[_c.upper()] = _ROMAJA_TABLE[_c]

_ROMAJA_COMBINATIONS = {
    (0x1166, 0x1169): 0x1165,  # e + o = ㅓ
    (0x1166, 0x116E): 0x1173,  # e + u = ㅡ
    (0x1161, 0x1166): 0x1162,  # a + e = ㅐ
    (0x1175, 0x1161): 0x1163,  # y + a = ㅑ
    (0x1163, 0x1166): 0x1164,  # ya + e = ㅒ
    (0x1175, 0x1166): 0x1168,  # y + e = ㅖ
    (0x1168, 0x1169): 0x1167,  # ye + o = ㅕ
    (0x1175, 0x1169): 0x116D,  # y + o = ㅛ
    (0x1175, 0x116E): 0x1172,  # y + u = ㅠ
    (0x116E, 0x1161): 0x116A,  # w + a = ㅘ
    (0x116A, 0x1166): 0x116B,  # wa + e = ㅙ
    (0x1169, 0x1166): 0x116C,  # o + e = ㅚ
    (0x116E, 0x1166): 0x1170,  # w + e = ㅞ
    (0x1170, 0x1169): 0x116F,  # we + o = ㅝ
    (0x116E, 0x1169): 0x116F,  # w + o = ㅝ
    (0x116E, 0x1175): 0x1171,  # w + i = ㅟ
    (0x1173, 0x1175): 0x1174,  # eu + i = ㅢ
    (0x110E, 0x1112): 0x110E,  # c + h = ㅊ
    (0x11BE, 0x11C2): 0x11BE,  # c + h after a vowel
    (0x11AB, 0x11A8): 0x11BC,  # n + g = ㅇ
}
_ROMAJA_COMBINATIONS.update(_DOUBLE_CHOSEONG)
for _pair, _value in _JONGSEONG_COMBINATIONS.items():
    _ROMAJA_COMBINATIONS.setdefault(_pair, _value)

KEYBOARDS = {
    '2': Keyboard('2', 'Dubeolsik', KEYBOARD_TYPE_JAMO, _DUBEOLSIK_TABLE, COMBINATION_DEFAULT),
    '39': Keyboard('39', 'Sebeolsik 390', KEYBOARD_TYPE_JASO, _SEBEOLSIK_390_TABLE, COMBINATION_FULL),
    '3f': Keyboard('3f', 'Sebeolsik Final', KEYBOARD_TYPE_JASO, _SEBEOLSIK_FINAL_TABLE, COMBINATION_FULL),
    '3s': Keyboard('3s', 'Sebeolsik Noshift', KEYBOARD_TYPE_JASO, _SEBEOLSIK_NOSHIFT_TABLE, _NOSHIFT_COMBINATION),
    'ro': Keyboard('ro', 'Romaja', KEYBOARD_TYPE_ROMAJA, _ROMAJA_TABLE, _ROMAJA_COMBINATIONS),
}
DEFAULT_KEYBOARD = '2'


def get_keyboard(keyboard_id):
    if keyboard_id not in KEYBOARDS:
        logger.warning(f'Keyboard "{keyboard_id}" is not supported; using "{DEFAULT_KEYBOARD}"')
        keyboard_id = DEFAULT_KEYBOARD
    return KEYBOARDS[keyboard_id]


class StrictOrderValidator:
    """
    Transition validator enforcing choseong → jungseong → jongseong order.

    A leading consonant is refused once the syllable holds a vowel or a
    trailing consonant; a vowel is refused once it holds a trailing
    consonant. Used when automatic reordering is disabled.
    """

    def __init__(self, composer):
        self._composer = composer

    def allow(self, jamo):
        if is_choseong(jamo):
            if self._composer.has_jungseong() or self._composer.has_jongseong():
                return False
        if is_jungseong(jamo):
            if self._composer.has_jongseong():
                return False
        return True


class HangulComposer:
    """
    Hangul input automaton for one keyboard layout.

    After each process() call the text decided during that call is
    available from commit_string(); the syllable still under composition
    is available from preedit_string().

        >>> composer = HangulComposer('2')
        >>> for c in 'gks':
        ...     composer.process(ord(c))
        >>> composer.preedit_string()
        '한'
        >>> composer.process(ord('k'))
        True
        >>> composer.commit_string(), composer.preedit_string()
        ('하', '나')
    """

    def __init__(self, keyboard=DEFAULT_KEYBOARD, validator=None):
        self._keyboard = get_keyboard(keyboard)
        self._validator = validator
        self._choseong = 0
        self._jungseong = 0
        self._jongseong = 0
        self._stack = []
        self._commit = ''

    @property
    def keyboard(self):
        return self._keyboard

    def set_validator(self, validator):
        self._validator = validator

    def has_jungseong(self):
        return self._jungseong != 0

    def has_jongseong(self):
        return self._jongseong != 0

    def is_empty(self):
        return not self._stack

    def preedit_string(self):
        return jamos_to_string(self._choseong, self._jungseong, self._jongseong)

    def commit_string(self):
        return self._commit

    def process(self, ascii):
        '''
        Feed one key symbol.

        Returns:
            bool: False when the key is not on the keyboard (the composer
                  state is left untouched), True otherwise
        '''
        self._commit = ''
        ch = self._keyboard.mapping(ascii)
        if ch == 0:
            return False
        if not is_jamo(ch):
            self._save_commit()
            self._commit += chr(ch)
            return True
        if self._keyboard.type == KEYBOARD_TYPE_JASO:
            return self._process_jaso(ch)
        return self._process_jamo(ch)

    def backspace(self):
        if not self._stack:
            return False
        self._stack.pop()
        self._choseong = self._peek(is_choseong)
        self._jungseong = self._peek(is_jungseong)
        self._jongseong = self._peek(is_jongseong)
        return True

    def flush(self):
        """Finish the current syllable and return it; the composer is empty afterwards."""
        text = self.preedit_string()
        self._clear()
        self._commit = ''
        return text

    def reset(self):
        self._clear()
        self._commit = ''

    def _process_jamo(self, ch):
        if self._jongseong:
            if is_choseong(ch):
                combined = self._keyboard.combine(self._jongseong, choseong_to_jongseong(ch))
                if is_jongseong(combined):
                    return self._push_or_retry(combined)
                self._save_commit()
                return self._push_or_retry(ch)
            # a vowel takes the trailing consonant (or the second half of
            # a cluster) as the leading consonant of the next syllable
            first, second = self._keyboard.split(self._jongseong)
            if second:
                self._jongseong = first
                choseong = jongseong_to_choseong(second)
            else:
                choseong = jongseong_to_choseong(self._jongseong)
                self._jongseong = 0
            self._save_commit()
            self._push_or_retry(choseong)
            return self._push_or_retry(ch)

        if self._jungseong:
            if is_choseong(ch):
                if self._choseong:
                    jongseong = choseong_to_jongseong(ch)
                    if is_jongseong(jongseong):
                        return self._push_or_retry(jongseong)
                    self._save_commit()
                return self._push_or_retry(ch)
            combined = self._keyboard.combine(self._jungseong, ch)
            if is_jungseong(combined):
                return self._push_or_retry(combined)
            self._save_commit()
            return self._push_vowel(ch)

        if self._choseong and is_choseong(ch):
            combined = self._keyboard.combine(self._choseong, ch)
            if is_choseong(combined):
                return self._push_or_retry(combined)
            self._save_commit()
        if is_jungseong(ch):
            return self._push_vowel(ch)
        return self._push_or_retry(ch)

    def _process_jaso(self, ch):
        if is_choseong(ch):
            current, test = self._choseong, is_choseong
        elif is_jungseong(ch):
            current, test = self._jungseong, is_jungseong
        else:
            current, test = self._jongseong, is_jongseong
        if not current:
            return self._push_or_retry(ch)
        combined = 0
        if test(self._stack[-1]):
            combined = self._keyboard.combine(current, ch)
        if combined:
            return self._push_or_retry(combined)
        self._save_commit()
        return self._push_or_retry(ch)

    def _push_vowel(self, ch):
        if self._keyboard.type == KEYBOARD_TYPE_ROMAJA and not self._choseong:
            self._push_or_retry(CHOSEONG_IEUNG)
        return self._push_or_retry(ch)

    def _push_or_retry(self, jamo):
        # a refused push has already committed the syllable, so the
        # second attempt starts from an empty one
        if self._push(jamo):
            return True
        if self._push(jamo):
            return True
        self._save_commit()
        return False

    def _push(self, jamo):
        if not is_jamo(jamo):
            self._save_commit()
            return False
        if self._validator is not None and not self._validator.allow(jamo):
            logger.debug(f'transition to U+{jamo:04X} refused')
            self._save_commit()
            return False
        if is_choseong(jamo):
            self._choseong = jamo
        elif is_jungseong(jamo):
            self._jungseong = jamo
        else:
            self._jongseong = jamo
        self._stack.append(jamo)
        return True

    def _peek(self, test):
        for jamo in reversed(self._stack):
            if test(jamo):
                return jamo
        return 0

    def _save_commit(self):
        self._commit += self.preedit_string()
        self._clear()

    def _clear(self):
        self._choseong = 0
        self._jungseong = 0
        self._jongseong = 0
        self._stack = []
