from hangul_engine import HangulConfig, load_engine
from hangul_state import CAPABILITY_SURROUNDING_TEXT
from hanja import SurroundingText
from keys import Key
import util

import gettext
import logging

import gi
gi.require_version('IBus', '1.0')
from gi.repository import IBus
# http://lazka.github.io/pgi-docs/IBus-1.0/index.html

logger = logging.getLogger(__name__)

_ = lambda a : gettext.dgettext(util.get_package_name(), a)

NAME_TO_LOGGING_LEVEL = {
    'DEBUG': logging.DEBUG,
    'INFO': logging.INFO,
    'WARNING': logging.WARNING,
    'ERROR': logging.ERROR,
    'CRITICAL': logging.CRITICAL,
}

PREEDIT_BACKGROUND_COLOR = 0xd1eaff
CANDIDATE_COMMENT_FOREGROUND_COLOR = 0x808080
CANDIDATE_LABELS = '1234567890'


class IBusInputContext:
    '''
    The host input context seen by HangulState, on top of an IBus.Engine.

    Preedit and candidate updates are kept until update_user_interface()
    pushes them to IBus.
    '''

    def __init__(self, engine):
        self._engine = engine
        self._capabilities = 0
        self._preedit = None
        self._candidates = None

    def set_capabilities(self, caps):
        self._capabilities = caps

    def capability_flags(self):
        return self._capabilities

    def surrounding_text(self):
        text, cursor, anchor = self._engine.get_surrounding_text()
        content = text.get_text() if text is not None else ''
        return SurroundingText(content, cursor, anchor, text is not None)

    def delete_surrounding_text(self, offset, length):
        logger.debug(f'delete_surrounding_text({offset}, {length})')
        self._engine.delete_surrounding_text(offset, length)

    def commit_string(self, text):
        logger.debug(f'commit_string("{text}")')
        self._engine.commit_text(IBus.Text.new_from_string(text))

    def update_preedit(self, preedit):
        self._preedit = preedit

    def update_candidates(self, candidates):
        self._candidates = candidates

    def update_user_interface(self):
        self._update_preedit()
        self._update_lookup_table()

    def _update_preedit(self):
        preedit = self._preedit
        if preedit is None:
            self._engine.hide_preedit_text()
            self._engine.hide_auxiliary_text()
            return
        text_str = preedit.buffer_text + preedit.composing_text
        text = IBus.Text.new_from_string(text_str)
        text.append_attribute(IBus.AttrType.UNDERLINE, IBus.AttrUnderline.SINGLE, 0, len(text_str))
        if preedit.composing_text:
            start = len(preedit.buffer_text)
            text.append_attribute(IBus.AttrType.BACKGROUND, PREEDIT_BACKGROUND_COLOR, start, len(text_str))
        if preedit.client_side:
            self._engine.update_preedit_text_with_mode(text, preedit.cursor, True, IBus.PreeditFocusMode.CLEAR)
        else:
            self._engine.update_auxiliary_text(text, True)

    def _update_lookup_table(self):
        candidates = self._candidates
        if candidates is None or candidates.empty():
            self._engine.hide_lookup_table()
            return
        # http://lazka.github.io/pgi-docs/IBus-1.0/classes/LookupTable.html
        table = IBus.LookupTable.new(candidates.page_size, 0, True, False)
        table.set_orientation(IBus.Orientation.VERTICAL)
        for i in range(candidates.page_size):
            table.set_label(i, IBus.Text.new_from_string(CANDIDATE_LABELS[i % len(CANDIDATE_LABELS)] + '.'))
        for candidate in candidates:
            text_str = candidate.text
            if candidate.comment:
                text_str += ' ' + candidate.comment
            text = IBus.Text.new_from_string(text_str)
            if candidate.comment:
                text.append_attribute(IBus.AttrType.FOREGROUND, CANDIDATE_COMMENT_FOREGROUND_COLOR,
                                      len(candidate.text) + 1, len(text_str))
            table.append_candidate(text)
        table.set_cursor_pos(candidates.global_cursor_index())
        self._engine.update_lookup_table(table, True)


class EngineHangul(IBus.Engine):
    '''
    http://lazka.github.io/pgi-docs/IBus-1.0/classes/Engine.html

    IBus creates one engine object per input context; all of them share
    one HangulEngine (configuration and hanja tables).
    '''
    __gtype_name__ = 'EngineHangul'

    _core = None
    _config = None

    def __init__(self):
        super().__init__()
        self._ic_id = id(self)
        self._ic = IBusInputContext(self)
        core = self._get_core()
        self._init_props(core.config.hanja_mode)
        logger.debug(f'EngineHangul init -- {self._ic_id}')

    @classmethod
    def _get_core(cls):
        if cls._core is None:
            cls._load_configs()
            cls._core = load_engine(HangulConfig.from_dict(cls._config),
                                    util.get_hanja_table_path(cls._config),
                                    util.get_symbol_table_path(cls._config))
        return cls._core

    @classmethod
    def _load_configs(cls):
        '''
        This function loads the necessary (and optional) configs from the config JSON file
        The logging level value would be set to WARNING, if it's absent in the config JSON.
        '''
        cls._config, warnings = util.get_config_data()
        cls._load_logging_level(cls._config)
        logger.debug('config.json loaded')
        if warnings:
            logger.info(f'config.json warnings: {warnings}')

    @staticmethod
    def _load_logging_level(config):
        '''
        This function sets the logging level
        which can be obtained from the config.json
        When the value is not present (or incorrect) in config.json,
        warning is used as default.
        '''
        level = 'WARNING' # default value
        if('logging_level' in config):
            level = config['logging_level']
        if(level not in NAME_TO_LOGGING_LEVEL):
            logger.warning(f'Specified logging level {level} is not recognized. Using the default WARNING level.')
            level = 'WARNING'
        logger.info(f'logging_level: {level}')
        logging.getLogger().setLevel(NAME_TO_LOGGING_LEVEL[level])
        return level

    def _init_props(self, hanja_mode):
        '''
        Creates the property shown in the panel (typically top-right corner).

        http://lazka.github.io/pgi-docs/IBus-1.0/classes/PropList.html
        http://lazka.github.io/pgi-docs/IBus-1.0/classes/Property.html
        '''
        self._prop_list = IBus.PropList()
        self._hanja_mode_prop = IBus.Property(
            key='HanjaMode',
            prop_type=IBus.PropType.TOGGLE,
            symbol=IBus.Text.new_from_string('漢'),
            label=IBus.Text.new_from_string(_('Hanja lock')),
            icon=None,
            tooltip=IBus.Text.new_from_string(_('Enable/Disable Hanja mode')),
            sensitive=True,
            visible=True,
            state=IBus.PropState.CHECKED if hanja_mode else IBus.PropState.UNCHECKED,
            sub_props=None)
        self._prop_list.append(self._hanja_mode_prop)

    def _update_hanja_mode_prop(self, hanja_mode):
        self._hanja_mode_prop.set_state(IBus.PropState.CHECKED if hanja_mode else IBus.PropState.UNCHECKED)
        self.update_property(self._hanja_mode_prop)

    def do_set_capabilities(self, caps):
        logger.debug(f'set_capabilities({caps})')
        self._ic.set_capabilities(caps)

    def do_process_key_event(self, keyval, keycode, state):
        key = Key(keyval, state).normalize()
        consumed = self._get_core().key_event(self._ic_id, self._ic, key)
        logger.debug(f'process_key_event({key!r}) -> {consumed}')
        return consumed

    def do_focus_in(self):
        logger.debug(f'focus_in({self._ic_id})')
        self.register_properties(self._prop_list)
        self._update_hanja_mode_prop(self._get_core().config.hanja_mode)
        if self._ic.capability_flags() & CAPABILITY_SURROUNDING_TEXT:
            # Request the initial surrounding-text
            self.get_surrounding_text()
        self._get_core().activate(self._ic_id, self._ic)

    def do_focus_out(self):
        logger.debug(f'focus_out({self._ic_id})')
        self._get_core().focus_out(self._ic_id, self._ic)

    def do_reset(self):
        logger.debug(f'reset({self._ic_id})')
        self._get_core().reset(self._ic_id, self._ic)

    def do_disable(self):
        logger.debug(f'disable({self._ic_id})')
        self._get_core().deactivate(self._ic_id, self._ic, switch_input_method=True)

    def do_destroy(self):
        logger.debug(f'destroy({self._ic_id})')
        self._get_core().release(self._ic_id)
        IBus.Engine.do_destroy(self)

    def do_candidate_clicked(self, index, button, state):
        self._get_core().select_candidate(self._ic_id, self._ic, index)

    def do_page_up(self):
        return self._get_core().navigate(self._ic_id, self._ic, 'prev_page')

    def do_page_down(self):
        return self._get_core().navigate(self._ic_id, self._ic, 'next_page')

    def do_cursor_up(self):
        return self._get_core().navigate(self._ic_id, self._ic, 'prev_candidate')

    def do_cursor_down(self):
        return self._get_core().navigate(self._ic_id, self._ic, 'next_candidate')

    def do_property_activate(self, prop_name, state):
        logger.info(f'property_activate({prop_name}, {state})')
        if prop_name != 'HanjaMode':
            return
        core = self._get_core()
        hanja_mode = state == IBus.PropState.CHECKED
        if hanja_mode != core.config.hanja_mode:
            core.toggle_hanja_mode()
        self._update_hanja_mode_prop(core.config.hanja_mode)
        EngineHangul._config['hanja_mode'] = core.config.hanja_mode
        util.save_config_data(EngineHangul._config)
