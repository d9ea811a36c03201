#!/usr/bin/env python3
# keys.py - Key representation and key-list matching for the Hangul engine

import logging

logger = logging.getLogger(__name__)

# modifier mask-bits (same values as IBus.ModifierType)
SHIFT_MASK      = 1 << 0
LOCK_MASK       = 1 << 1
CONTROL_MASK    = 1 << 2
MOD1_MASK       = 1 << 3  # Alt
MOD4_MASK       = 1 << 6  # Super on most X11 keymaps
SUPER_MASK      = 1 << 26
HYPER_MASK      = 1 << 27
RELEASE_MASK    = 1 << 30
ALT_MASK        = MOD1_MASK
MODIFIER_MASK   = SHIFT_MASK | CONTROL_MASK | ALT_MASK | SUPER_MASK | HYPER_MASK

# keysyms (same values as IBus.KEY_*)
KEY_space           = 0x020
KEY_BackSpace       = 0xff08
KEY_Tab             = 0xff09
KEY_Return          = 0xff0d
KEY_Escape          = 0xff1b
KEY_Hangul          = 0xff31
KEY_Hangul_Hanja    = 0xff34
KEY_Left            = 0xff51
KEY_Up              = 0xff52
KEY_Right           = 0xff53
KEY_Down            = 0xff54
KEY_Page_Up         = 0xff55
KEY_Page_Down       = 0xff56
KEY_KP_Enter        = 0xff8d
KEY_F1              = 0xffbe
KEY_Shift_L         = 0xffe1
KEY_Shift_R         = 0xffe2
KEY_Control_L       = 0xffe3
KEY_Control_R       = 0xffe4
KEY_Caps_Lock       = 0xffe5
KEY_Alt_L           = 0xffe9
KEY_Alt_R           = 0xffea
KEY_Super_L         = 0xffeb
KEY_Super_R         = 0xffec
KEY_Hyper_L         = 0xffed
KEY_Hyper_R         = 0xffee
KEY_ISO_Left_Tab    = 0xfe20

KEY_NAMES = {
    'space': KEY_space,
    'BackSpace': KEY_BackSpace,
    'Tab': KEY_Tab,
    'Return': KEY_Return,
    'Escape': KEY_Escape,
    'Hangul': KEY_Hangul,
    'Hangul_Hanja': KEY_Hangul_Hanja,
    'Left': KEY_Left,
    'Up': KEY_Up,
    'Right': KEY_Right,
    'Down': KEY_Down,
    'Page_Up': KEY_Page_Up,
    'Prior': KEY_Page_Up,
    'Page_Down': KEY_Page_Down,
    'Next': KEY_Page_Down,
    'KP_Enter': KEY_KP_Enter,
    'Shift_L': KEY_Shift_L,
    'Shift_R': KEY_Shift_R,
    'Control_L': KEY_Control_L,
    'Control_R': KEY_Control_R,
    'Caps_Lock': KEY_Caps_Lock,
    'Alt_L': KEY_Alt_L,
    'Alt_R': KEY_Alt_R,
    'Super_L': KEY_Super_L,
    'Super_R': KEY_Super_R,
    'Hyper_L': KEY_Hyper_L,
    'Hyper_R': KEY_Hyper_R,
    'ISO_Left_Tab': KEY_ISO_Left_Tab,
}
for _i in range(12):
    KEY_NAMES[f'F{_i + 1}'] = KEY_F1 + _i

MODIFIER_NAMES = {
    'Shift': SHIFT_MASK,
    'Control': CONTROL_MASK,
    'Ctrl': CONTROL_MASK,
    'Alt': ALT_MASK,
    'Super': SUPER_MASK,
    'Hyper': HYPER_MASK,
}

# (state, left keysym, right keysym)
MODIFIER_KEYS = (
    (CONTROL_MASK, KEY_Control_L, KEY_Control_R),
    (ALT_MASK, KEY_Alt_L, KEY_Alt_R),
    (SHIFT_MASK, KEY_Shift_L, KEY_Shift_R),
    (SUPER_MASK, KEY_Super_L, KEY_Super_R),
    (HYPER_MASK, KEY_Hyper_L, KEY_Hyper_R),
)


class Key:
    """
    A key as delivered by the host: a keysym, a modifier-state set and
    a release flag.

    Matching (check / check_key_list) only compares the keysym and the
    Shift/Control/Alt/Super/Hyper bits, so CapsLock and NumLock never
    prevent a configured key from matching.
    """

    def __init__(self, sym, states=0):
        self.sym = sym
        self.states = states & ~RELEASE_MASK
        self.is_release = bool(states & RELEASE_MASK)

    def __repr__(self):
        return f'Key({self.name()!r}, release={self.is_release})'

    def __eq__(self, other):
        if not isinstance(other, Key):
            return NotImplemented
        return (self.sym, self.states, self.is_release) == (other.sym, other.states, other.is_release)

    def __hash__(self):
        return hash((self.sym, self.states, self.is_release))

    @classmethod
    def parse(cls, text):
        """
        Parse a key string such as "Shift+Tab", "Control+space" or "F9".

        Returns:
            Key, or None when the key name is not known
        """
        if not text:
            return None
        parts = text.split('+')
        # "Control++" means the plus key itself
        if text.endswith('++'):
            parts = parts[:-2] + ['+']
        states = 0
        for modifier in parts[:-1]:
            if modifier not in MODIFIER_NAMES:
                logger.warning(f'Unknown modifier "{modifier}" in key "{text}"')
                return None
            states |= MODIFIER_NAMES[modifier]
        name = parts[-1]
        if name in KEY_NAMES:
            sym = KEY_NAMES[name]
        elif len(name) == 1 and 0x20 < ord(name) < 0x7f:
            sym = ord(name)
        else:
            logger.warning(f'Unknown key name "{name}" in key "{text}"')
            return None
        return cls(sym, states).normalize()

    def name(self):
        names = [n for n, mask in MODIFIER_NAMES.items() if n != 'Ctrl' and self.states & mask]
        for n, sym in KEY_NAMES.items():
            if sym == self.sym:
                return '+'.join(names + [n])
        if 0x20 < self.sym < 0x7f:
            return '+'.join(names + [chr(self.sym)])
        return '+'.join(names + [hex(self.sym)])

    def normalize(self):
        '''
        Fold the host's raw key into the form used for matching:
        Mod4 counts as Super, Shift+Tab arrives as ISO_Left_Tab and
        printable keys already carry their shifted symbol.
        '''
        sym = self.sym
        states = self.states
        if states & MOD4_MASK:
            states = (states & ~MOD4_MASK) | SUPER_MASK
        if sym == KEY_ISO_Left_Tab:
            sym = KEY_Tab
            states |= SHIFT_MASK
        if states & SHIFT_MASK and 0x20 < sym < 0x7f:
            if ord('a') <= sym <= ord('z'):
                sym = ord(chr(sym).upper())
            states &= ~SHIFT_MASK
        key = Key(sym, states)
        key.is_release = self.is_release
        return key

    def check(self, other):
        return (self.sym == other.sym and
                (self.states & MODIFIER_MASK) == (other.states & MODIFIER_MASK))

    def check_key_list(self, key_list):
        return self.key_list_index(key_list) >= 0

    def key_list_index(self, key_list):
        for i, key in enumerate(key_list):
            if self.check(key):
                return i
        return -1

    def is_caps_lock_on(self):
        return bool(self.states & LOCK_MASK)


def parse_key_list(names):
    """Parse a list of key strings, dropping the ones that cannot be parsed."""
    keys = []
    for name in names:
        key = Key.parse(name)
        if key is not None:
            keys.append(key)
    return keys


def flip_case(sym):
    '''
    Swap the case of an ASCII letter keysym in the 'A'..'z' range.
    Anything else is returned as-is.
    '''
    if ord('A') <= sym <= ord('z'):
        c = chr(sym)
        if c.isupper():
            return ord(c.lower())
        if c.islower():
            return ord(c.upper())
    return sym
