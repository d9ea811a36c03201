#!/usr/bin/env python3
# hangul_engine.py - Engine core: configuration snapshot, hanja tables and sessions

import logging

from candidate_list import DEFAULT_PAGE_SIZE
from hangul_composer import DEFAULT_KEYBOARD
from hangul_state import HangulState
from hanja import load_table
from keys import parse_key_list

logger = logging.getLogger(__name__)

DEFAULT_CONFIG = {
    'keyboard': DEFAULT_KEYBOARD,
    'auto_reorder': True,
    'word_commit': False,
    'hanja_mode': False,
    'hanja_mode_toggle_keys': ['Hangul_Hanja', 'F9'],
    'prev_page_keys': ['Up'],
    'next_page_keys': ['Down'],
    'prev_candidate_keys': ['Shift+Tab'],
    'next_candidate_keys': ['Tab'],
    'page_size': DEFAULT_PAGE_SIZE,
}

KEY_LIST_NAMES = (
    'hanja_mode_toggle_keys',
    'prev_page_keys',
    'next_page_keys',
    'prev_candidate_keys',
    'next_candidate_keys',
)


class HanjaTableError(RuntimeError):
    pass


class HangulConfig:
    """
    Immutable snapshot of the engine configuration.

    Sessions read the snapshot once at the start of each event, so a new
    configuration takes effect from the next event on. Key lists are kept
    both as the configured strings and as parsed keys.Key objects.
    """

    def __init__(self, **values):
        data = dict(DEFAULT_CONFIG)
        for name, value in values.items():
            if name not in DEFAULT_CONFIG:
                logger.debug(f'HangulConfig: ignoring unknown key "{name}"')
                continue
            data[name] = value
        object.__setattr__(self, '_data', data)
        for name, value in data.items():
            if name in KEY_LIST_NAMES:
                value = parse_key_list(value)
            object.__setattr__(self, name, value)

    def __setattr__(self, name, value):
        raise AttributeError('HangulConfig is immutable')

    def __eq__(self, other):
        if not isinstance(other, HangulConfig):
            return NotImplemented
        return self._data == other._data

    def __hash__(self):
        return hash(tuple(sorted((k, str(v)) for k, v in self._data.items())))

    def __repr__(self):
        return f'HangulConfig({self._data!r})'

    @classmethod
    def from_dict(cls, config):
        '''
        Build a snapshot from config.json data; keys that do not concern
        the engine core (logging_level, table paths) are left out.
        '''
        return cls(**{k: v for k, v in config.items() if k in DEFAULT_CONFIG})

    def to_dict(self):
        return dict(self._data)

    def replace(self, **values):
        data = self.to_dict()
        data.update(values)
        return HangulConfig(**data)

    def functional_key_states(self):
        """Union of the modifier states used by all configured key lists."""
        states = 0
        for name in KEY_LIST_NAMES:
            for key in getattr(self, name):
                states |= key.states
        return states


class HangulEngine:
    """
    Shared engine core.

    Owns the hanja tables (read-only, shared by all sessions) and one
    HangulState per input context, keyed by an id chosen by the caller.
    A session is created on the first event of its input context and
    lives until release() is called for it.
    """

    def __init__(self, config, table, symbol_table=None):
        if table is None:
            raise HanjaTableError('Failed to load hanja table.')
        self.config = config
        self.table = table
        self.symbol_table = symbol_table
        self._states = dict()

    def __len__(self):
        return len(self._states)

    def state(self, ic_id, ic):
        state = self._states.get(ic_id)
        if state is None:
            logger.debug(f'HangulEngine: new session for {ic_id}')
            state = HangulState(self, ic)
            self._states[ic_id] = state
        return state

    def has_state(self, ic_id):
        return ic_id in self._states

    def release(self, ic_id):
        if self._states.pop(ic_id, None) is not None:
            logger.debug(f'HangulEngine: released session for {ic_id}')

    def key_event(self, ic_id, ic, key):
        return self.state(ic_id, ic).key_event(key)

    def select_candidate(self, ic_id, ic, index):
        """Select candidate `index` of the current page."""
        candidates = self.state(ic_id, ic).candidates
        if candidates is None or not 0 <= index < candidates.size():
            return False
        candidates.candidate(index).select()
        return True

    def navigate(self, ic_id, ic, action):
        return self.state(ic_id, ic).navigate(action)

    def reset(self, ic_id, ic):
        self.state(ic_id, ic).reset()

    def activate(self, ic_id, ic):
        self.state(ic_id, ic).update_ui()

    def deactivate(self, ic_id, ic, switch_input_method=False):
        '''
        Leave an input context. Switching to another input method commits
        the pending text first; anything else discards it.
        '''
        state = self.state(ic_id, ic)
        if switch_input_method:
            state.flush()
        state.reset()

    def focus_out(self, ic_id, ic):
        state = self.state(ic_id, ic)
        state.flush()
        state.update_ui()

    def set_config(self, config):
        """Install a new snapshot; sessions rebuild their composer when the keyboard or reordering changed."""
        keyboard_changed = (config.keyboard != self.config.keyboard
                            or config.auto_reorder != self.config.auto_reorder)
        self.config = config
        if keyboard_changed:
            for state in self._states.values():
                state.configure(config)
        logger.info(f'HangulEngine.set_config(keyboard={config.keyboard}, hanja_mode={config.hanja_mode})')

    def toggle_hanja_mode(self):
        self.set_config(self.config.replace(hanja_mode=not self.config.hanja_mode))
        return self.config.hanja_mode


def load_engine(config, hanja_path=None, symbol_path=None):
    """
    Load the tables and build the engine.

    Raises:
        HanjaTableError: when the main hanja table cannot be loaded
    """
    table = load_table(hanja_path)
    if table is None:
        raise HanjaTableError(f'Failed to load hanja table: {hanja_path}')
    symbol_table = None
    if symbol_path:
        symbol_table = load_table(symbol_path)
        if symbol_table is None:
            logger.warning(f'Symbol table not loaded: {symbol_path}')
    return HangulEngine(config, table, symbol_table)
