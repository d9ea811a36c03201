#!/usr/bin/env python3
"""
hangul_state.py - Per-input-context Hangul session

================================================================================
BUFFERS
================================================================================

A session keeps text in two places before it reaches the application:

    ┌──────────────────────────────┬──────────────────────────┐
    │  buffer (decided text)       │  composer preedit        │
    │  "대한민"                    │  "ㄱ" / "구" / "국"      │
    └──────────────────────────────┴──────────────────────────┘

The buffer is only used while word commit or hanja mode is on: syllables
the composer decides are appended to it instead of being committed, so
that a whole word can be looked up in the hanja table. Both parts are
shown as one preedit; the composer part is highlighted.

================================================================================
KEY EVENT FLOW
================================================================================

    release ──────────────────────────────────────────→ ignored
    hanja toggle key ─→ look up (host text allowed) / dismiss candidates
    Shift_L / Shift_R ────────────────────────────────→ not consumed
    candidates shown ─→ paging, cursor movement, 1-9 0, Return
    Ctrl / Alt / Shift / Super / Hyper held ─→ flush, not consumed
    BackSpace ─→ composer first, then the buffer
    anything else ─→ composer (CapsLock undone for letters)

After BackSpace and ordinary keys the candidate list is recomputed from
the local buffers in hanja mode, and dismissed otherwise.

================================================================================
HOST INPUT CONTEXT
================================================================================

The session talks to the application through an input-context object with
these methods:

    surrounding_text()                  -> hanja.SurroundingText
    delete_surrounding_text(offset, n)
    commit_string(text)
    capability_flags()                  -> int (CAPABILITY_* bits)
    update_preedit(preedit)             Preedit, or None to hide it
    update_candidates(candidates)       CandidateList, or None to hide it
    update_user_interface()
================================================================================
"""

from collections import namedtuple
import logging

from candidate_list import CandidateList
from hangul_composer import HangulComposer, StrictOrderValidator
from hanja import LookupMethod, build_lookup_key, lookup_table
import keys
from keys import Key

logger = logging.getLogger(__name__)

CAPABILITY_PREEDIT = 1 << 0
CAPABILITY_SURROUNDING_TEXT = 1 << 5

# decided text kept in the buffer before it is flushed to the host
MAX_LENGTH = 40

SELECTION_KEYS = [Key(ord(c)) for c in '1234567890']
BACKSPACE_KEY = Key(keys.KEY_BackSpace)
RETURN_KEY = Key(keys.KEY_Return)

# buffer_text is plain, composing_text is highlighted
Preedit = namedtuple('Preedit', ['buffer_text', 'composing_text', 'cursor', 'client_side'])


class HangulCandidate:
    '''
    One entry of the displayed candidate list. `index` is the entry's
    position in the whole hanja list, not on the current page.
    '''

    def __init__(self, state, index, text, comment=''):
        self._state = state
        self.index = index
        self.text = text
        self.comment = comment

    def __repr__(self):
        return f'HangulCandidate({self.index}, {self.text!r})'

    def select(self):
        self._state.select(self.index)


class HangulState:
    """
    Composition state of one input context.

    `engine` supplies the configuration snapshot and the shared hanja
    tables (attributes `config`, `table` and `symbol_table`); `ic` is the
    host input context described in the module docstring.
    """

    def __init__(self, engine, ic):
        self._engine = engine
        self._ic = ic
        self._composer = None
        self._buffer = ''
        self._hanja_list = None
        self._last_lookup_method = LookupMethod.PREFIX
        self._candidates = None
        self.configure()

    @property
    def buffer(self):
        return self._buffer

    @property
    def composer(self):
        return self._composer

    @property
    def hanja_list(self):
        return self._hanja_list

    @property
    def last_lookup_method(self):
        return self._last_lookup_method

    @property
    def candidates(self):
        return self._candidates

    def configure(self, config=None):
        """(Re)create the composer for the configured keyboard."""
        config = config or self._engine.config
        self._composer = HangulComposer(config.keyboard)
        if not config.auto_reorder:
            self._composer.set_validator(StrictOrderValidator(self._composer))
        logger.debug(f'HangulState.configure(keyboard={config.keyboard}, auto_reorder={config.auto_reorder})')

    def key_event(self, key):
        '''
        Process one key event.

        Returns:
            bool: True when the event was consumed
        '''
        config = self._engine.config
        if key.is_release:
            return False

        if key.check_key_list(config.hanja_mode_toggle_keys):
            # a lookup without matches shows nothing, so it is retried
            if self._candidates is None or self._candidates.empty():
                self.update_lookup_table(config, True)
            else:
                self.cleanup()
            self.update_ui(config)
            return True

        sym = key.sym
        if sym in (keys.KEY_Shift_L, keys.KEY_Shift_R):
            return False

        # a modifier that is part of a configured key must reach us untouched
        states = config.functional_key_states()
        for mask, left, right in keys.MODIFIER_KEYS:
            if states & mask and sym in (left, right):
                return False

        if self._candidates is not None and not self._candidates.empty():
            if self._process_candidate_key(key, config):
                return True
            if not config.hanja_mode:
                self.cleanup()

        if key.states & keys.MODIFIER_MASK:
            self.flush()
            self.update_ui(config)
            return False

        if key.check(BACKSPACE_KEY):
            consumed = self._composer.backspace()
            if not consumed and self._buffer:
                self._buffer = self._buffer[:-1]
                consumed = True
        else:
            consumed = self._process_key(key, config)

        if config.hanja_mode:
            self.update_lookup_table(config, False)
        else:
            self.cleanup()
        self.update_ui(config)
        return consumed

    def _process_candidate_key(self, key, config):
        for key_list, action in ((config.prev_page_keys, 'prev_page'),
                                 (config.next_page_keys, 'next_page'),
                                 (config.prev_candidate_keys, 'prev_candidate'),
                                 (config.next_candidate_keys, 'next_candidate')):
            if key.check_key_list(key_list):
                return self.navigate(action)

        candidates = self._candidates
        index = key.key_list_index(SELECTION_KEYS)
        if index >= 0:
            if index < candidates.size():
                candidates.candidate(index).select()
            return True
        if key.check(RETURN_KEY):
            index = max(candidates.cursor_index(), 0)
            if index < candidates.size():
                candidates.candidate(index).select()
                return True
        return False

    def navigate(self, action):
        '''
        Move the displayed candidate list: action is one of "prev_page",
        "next_page", "prev_candidate" or "next_candidate".
        '''
        if self._candidates is None or self._candidates.empty():
            return False
        getattr(self._candidates, action)()
        self._ic.update_candidates(self._candidates)
        self._ic.update_user_interface()
        return True

    def _process_key(self, key, config):
        if len(self._buffer) >= MAX_LENGTH:
            self.flush()

        sym = key.sym
        if key.is_caps_lock_on():
            sym = keys.flip_case(sym)

        consumed = self._composer.process(sym)
        commit = self._composer.commit_string()
        if config.word_commit or config.hanja_mode:
            self._buffer += commit
            if not self._composer.preedit_string():
                if self._buffer:
                    self._ic.commit_string(self._buffer)
                self._buffer = ''
        elif commit:
            self._ic.commit_string(commit)

        if not consumed:
            self.flush()
        return consumed

    def _surrounding(self):
        if not self._ic.capability_flags() & CAPABILITY_SURROUNDING_TEXT:
            return None
        return self._ic.surrounding_text()

    def update_lookup_table(self, config=None, check_surrounding=False):
        """
        Recompute the hanja list from the buffer, the composer and (when
        allowed) the host text around the cursor.
        """
        config = config or self._engine.config
        self._hanja_list = None
        result = build_lookup_key(self._buffer,
                                  self._composer.preedit_string(),
                                  self._surrounding(),
                                  check_surrounding,
                                  config.word_commit or config.hanja_mode)
        if result is None:
            return
        key, method = result
        self._hanja_list = lookup_table(key, method, self._engine.table, self._engine.symbol_table)
        self._last_lookup_method = method

    def select(self, pos, config=None):
        '''
        Commit candidate `pos` of the hanja list, removing the text it
        replaces from the buffer, the composer or the host document.
        '''
        config = config or self._engine.config
        if self._hanja_list is None:
            logger.warning(f'select({pos}) without a hanja list; resetting')
            self.reset()
            return
        key = self._hanja_list.get_nth_key(pos)
        value = self._hanja_list.get_nth_value(pos)
        composing = self._composer.preedit_string()
        if key is None or value is None or composing is None:
            logger.warning(f'select({pos}) on an invalid candidate; resetting')
            self.reset()
            return

        # these may go negative; only positive remainders remove text
        key_length = len(key)
        buffer_length = len(self._buffer)
        preedit_length = len(composing)
        surrounding = False

        if self._last_lookup_method == LookupMethod.PREFIX:
            if buffer_length == 0 and preedit_length == 0:
                if key_length > 0:
                    self._ic.delete_surrounding_text(-key_length, key_length)
                    surrounding = True
            else:
                if key_length > 0:
                    self._buffer = self._buffer[min(key_length, buffer_length):]
                    key_length -= buffer_length
                if key_length > 0:
                    self._composer.reset()
                    key_length -= preedit_length
        else:
            if preedit_length > 0:
                self._composer.reset()
                key_length -= preedit_length
            if key_length > buffer_length:
                self._buffer = ''
                key_length -= buffer_length
            elif key_length > 0:
                self._buffer = self._buffer[key_length:]
                key_length = 0
            if self._last_lookup_method != LookupMethod.EXACT and key_length > 0:
                self._ic.delete_surrounding_text(-key_length, key_length)
                surrounding = True

        logger.debug(f'select({pos}): "{key}" → "{value}"')
        self._ic.commit_string(value)
        if surrounding:
            self.cleanup()
        self.update_lookup_table(config, False)
        self.update_ui(config)

    def flush(self):
        """Commit the buffer and the composer preedit to the host."""
        self.cleanup()
        self._buffer += self._composer.flush()
        if not self._buffer:
            return
        self._ic.commit_string(self._buffer)
        self._buffer = ''

    def reset(self):
        self._buffer = ''
        self._composer.reset()
        self.cleanup()
        self.update_ui()

    def cleanup(self):
        self._hanja_list = None
        self._candidates = None

    def update_ui(self, config=None):
        config = config or self._engine.config
        composing = self._composer.preedit_string()
        preedit = None
        if self._buffer or composing:
            client_side = bool(self._ic.capability_flags() & CAPABILITY_PREEDIT)
            preedit = Preedit(self._buffer, composing, len(self._buffer) + len(composing), client_side)
        self._ic.update_preedit(preedit)

        self._candidates = None
        if self._hanja_list is not None and len(self._hanja_list) > 0:
            self._candidates = CandidateList(
                [HangulCandidate(self, i, entry.value, entry.comment)
                 for i, entry in enumerate(self._hanja_list)],
                config.page_size)
            self._candidates.set_global_cursor_index(0)
        self._ic.update_candidates(self._candidates)
        self._ic.update_user_interface()
