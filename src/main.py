"""
main.py - Entry point for the Hangul-Hanja IME engine
한글·한자 입력기 엔진의 시작점

================================================================================
WHAT THIS FILE DOES / 이 파일의 역할
================================================================================

When the user selects the engine as input method, IBus starts this script.
사용자가 입력기로 이 엔진을 선택하면 IBus가 이 스크립트를 실행한다.

    User selects the engine in system settings
            ↓
    IBus daemon starts this script (--ibus)
            ↓
    This script loads the hanja table and registers EngineHangul with IBus
            ↓
    EngineHangul (engine.py) handles all keyboard input

================================================================================
FILE RELATIONSHIPS / 파일 관계
================================================================================

    main.py (THIS FILE)          ← Entry point, IBus registration
        │
        └──► engine.py           ← IBus adapter (EngineHangul)
                  │
                  ├──► hangul_engine.py    (configuration, tables, sessions)
                  ├──► hangul_state.py     (per input-context key handling)
                  ├──► hangul_composer.py  (Hangul syllable automaton)
                  ├──► hanja.py            (hanja tables and lookup)
                  └──► util.py             (configuration files, directories)

================================================================================
"""

from engine import EngineHangul
from hangul_engine import HanjaTableError
import util

import getopt
import gettext
import os
import locale
import logging
import sys
from shutil import copyfile

import gi
gi.require_version('IBus', '1.0')
from gi.repository import GLib, GObject, IBus

_ = lambda a : gettext.dgettext(util.get_package_name(), a)

ENGINE_NAME = 'hangul-hanja'
BUS_NAME = 'org.freedesktop.IBus.HangulHanja'


class IMApp:
    """
    Connects EngineHangul to the IBus daemon.

    exec_by_ibus=True: the daemon started us, only the D-Bus name is requested.
    exec_by_ibus=False: standalone (development) run, the component and the
    engine description are registered by hand.
    """

    def __init__(self, exec_by_ibus: bool) -> None:
        if not isinstance(exec_by_ibus, bool):
            raise TypeError("The `exec_by_ibus` parameter must be a boolean value.")
        self.exec_by_ibus = exec_by_ibus
        self._mainloop = GLib.MainLoop()
        self._bus = IBus.Bus()
        # http://lazka.github.io/pgi-docs/GObject-2.0/classes/Object.html#GObject.Object.connect
        self._bus.connect("disconnected", self._bus_disconnected_cb)
        self._factory = IBus.Factory(self._bus)
        self._factory.add_engine(ENGINE_NAME, GObject.type_from_name("EngineHangul"))
        if exec_by_ibus:
            # http://lazka.github.io/pgi-docs/IBus-1.0/classes/Bus.html#IBus.Bus.request_name
            self._bus.request_name(BUS_NAME, 0)
        else:
            self._component = IBus.Component(
                name=BUS_NAME,
                description=_("Korean input with Hanja conversion"),
                version=util.get_version(),
                license="MIT",
                author="ibus-hangul-hanja contributors",
                textdomain=util.get_package_name())
            engine = IBus.EngineDesc(
                name=ENGINE_NAME,
                longname="Hangul (Hanja)",
                description=_("Korean input with Hanja conversion"),
                language="ko",
                license="MIT",
                author="ibus-hangul-hanja contributors",
                icon=util.get_package_name(),
                layout="kr")
            # http://lazka.github.io/pgi-docs/IBus-1.0/classes/Component.html#IBus.Component.add_engine
            self._component.add_engine(engine)
            self._bus.register_component(self._component)
            self._bus.set_global_engine_async(ENGINE_NAME, -1, None, None, None)

    def run(self):
        self._mainloop.run()

    def _bus_disconnected_cb(self, bus=None):
        self._mainloop.quit()


def print_help(v: int = 0) -> None:
    print("-i, --ibus             executed by IBus.")
    print("-h, --help             show this message.")
    print("-d, --daemonize        daemonize ibus")
    sys.exit(v)


def main():
    """
    Set up the user config directory and logging, parse the command line,
    load the hanja table and run the IBus main loop.

    The process exits with status 1 when the hanja table cannot be loaded.
    한자 사전을 읽지 못하면 종료 코드 1로 끝난다.
    """
    try:
        locale.bindtextdomain(util.get_package_name(), util.get_localedir())
    except AttributeError:
        # not every platform's locale module has bindtextdomain
        pass
    gettext.bindtextdomain(util.get_package_name(), util.get_localedir())

    os.umask(0o077)

    # Create user specific data directory
    user_configdir = util.get_user_config_dir()
    os.makedirs(user_configdir, 0o700, True)
    os.chmod(user_configdir, 0o700)

    # check the config file and copy it from installed directory if it does not exist
    configfile_name = os.path.join(user_configdir, 'config.json')
    if not os.path.exists(configfile_name):
        copyfile(util.get_default_config_path(), configfile_name)

    # logging settings; the level from config.json is applied once the engine loads it
    logfile_name = os.path.join(user_configdir, util.get_package_name() + '.log')
    logging.basicConfig(filename=logfile_name, level=logging.WARNING, format='%(asctime)s %(levelname)-8s %(message)s', datefmt='%Y-%m-%d %H:%M:%S')
    logger = logging.getLogger()
    logger.info(f'main.py user_configdir: {user_configdir}')
    logger.info(f'main.py util.get_datadir(): {util.get_datadir()}')

    exec_by_ibus = False
    daemonize = False

    shortopt = "ihd"
    longopt = ["ibus", "help", "daemonize"]

    try:
        opts, args = getopt.getopt(sys.argv[1:], shortopt, longopt)
    except getopt.GetoptError as err:
        logger.error(err)
        sys.exit(1)

    # this is still required as argparse is having problem with IBus
    for o, a in opts:
        if o in ("-h", "--help"):
            print_help(0)
        elif o in ("-d", "--daemonize"):
            daemonize = True
        elif o in ("-i", "--ibus"):
            exec_by_ibus = True
        else:
            sys.stderr.write("Unknown argument: %s\n" % o)
            print_help(1)
    logger.info(f'daemonize? : {daemonize}')
    logger.info(f'IBus exec? : {exec_by_ibus}')

    try:
        EngineHangul._get_core()
    except HanjaTableError as e:
        logger.critical(f'Cannot start the engine: {e}')
        sys.stderr.write(f'{e}\n')
        sys.exit(1)

    if daemonize:
        if os.fork():
            sys.exit()
    IMApp(exec_by_ibus).run()


if __name__ == "__main__":
    main()
