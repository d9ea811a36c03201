import codecs
import json
import os
import sys
from gi.repository import GLib
import logging

logger = logging.getLogger(__name__)

HANJA_TABLE_NAME = os.path.join('libhangul', 'hanja', 'hanja.txt')
SYMBOL_TABLE_NAMES = ('symbol.txt', os.path.join('hangul', 'symbol.txt'))


def get_package_name():
    '''
    returns 'ibus-hangul-hanja'
    '''
    return 'ibus-hangul-hanja'


def get_version():
    return '0.1.0'


def get_prefix():
    '''
    It is usually /usr/local/
    '''
    return sys.prefix


def get_datadir():
    '''
    Return the path to the data directory under user-independent (central)
    location (= not under the HOME).
    The data/ directory of a source checkout is used when present.
    '''
    source_data = os.path.join(os.path.dirname(os.path.abspath(__file__)), '..', 'data')
    if os.path.exists(os.path.join(source_data, 'config.json')):
        return os.path.normpath(source_data)
    installed_data = os.path.join(get_prefix(), 'share', get_package_name())
    if os.path.exists(installed_data):
        return installed_data
    return os.path.join('/usr/share', get_package_name())


def get_default_config_path():
    '''
    Return the path to the default config file in the system installation.
    This is the config.json that gets copied to user's home on first run.
    '''
    return os.path.join(get_datadir(), 'config.json')


def get_localedir():
    return os.path.join(get_prefix(), 'share', 'locale')


def get_user_config_dir():
    '''
    Return the path to the config directory under $HOME.
    Typically, it would be $HOME/.config/ibus-hangul-hanja
    '''
    return os.path.join(GLib.get_user_config_dir(), get_package_name())


def get_config_data():
    '''
    This function is to load the config JSON file from the HOME/.config/ibus-hangul-hanja
    When the file is not present (e.g., after initial installation), it will copy
    the default config.json from the central location.
    Keys missing from the user's file, or holding a value of another type
    than the default, are replaced by the default value.

    Returns:
        tuple: (config_data, warnings_string) where warnings_string is empty if no warnings
    '''
    configfile_path = os.path.join(get_user_config_dir(), 'config.json')
    default_config_path = get_default_config_path()
    with codecs.open(default_config_path, encoding='utf-8') as f:
        default_config = json.load(f)
    warnings = ""

    if(not os.path.exists(configfile_path)):
        warning_msg = f'config.json is not found under {get_user_config_dir()} . Copying the default config.json from {default_config_path} ..'
        logger.warning(warning_msg)
        warnings = warning_msg
        os.makedirs(get_user_config_dir(), exist_ok=True)
        with open(configfile_path, 'w', encoding='utf-8') as f:
            json.dump(default_config, f, ensure_ascii=False, indent=2)
        return(default_config, warnings)
    try:
        with codecs.open(configfile_path, encoding='utf-8') as f:
            config_data = json.load(f)
    except json.decoder.JSONDecodeError as e:
        logger.error(f'Error loading the config.json under {get_user_config_dir()}')
        logger.error(e)
        logger.error(f'Using (but not copying) the default config.json from {default_config_path} ..')
        return default_config, warnings

    if not isinstance(config_data, dict):
        logger.error(f'config.json under {get_user_config_dir()} is not a JSON object. Using the default config.json')
        return default_config, warnings

    for k in default_config:
        if k not in config_data:
            warning_msg = f'The key "{k}" was not found in the config.json under {get_user_config_dir()} . Copying the default key-value'
            logger.warning(warning_msg)
            warnings += ("\n" if warnings else "") + warning_msg
            config_data[k] = default_config[k]
        if type(config_data[k]) != type(default_config[k]):
            warning_msg = f'Type mismatch found for the key "{k}" between config.json under {get_user_config_dir()} and default config.json. Replacing the value of this key with the value in default config.json'
            logger.warning(warning_msg)
            warnings += ("\n" if warnings else "") + warning_msg
            config_data[k] = default_config[k]

    # key lists must hold key names only
    for k, v in config_data.items():
        if k.endswith('_keys') and not (isinstance(v, list) and all(isinstance(name, str) for name in v)):
            warning_msg = f'The key list "{k}" contains non-string entries. Replacing it with the value in default config.json'
            logger.warning(warning_msg)
            warnings += ("\n" if warnings else "") + warning_msg
            config_data[k] = default_config.get(k, [])

    return config_data, warnings


def save_config_data(config_data):
    '''
    Save config data to the user config directory.

    Args:
        config_data: Dictionary containing configuration data to save

    Returns:
        bool: True if save was successful, False otherwise
    '''
    configfile_path = os.path.join(get_user_config_dir(), 'config.json')

    try:
        # Ensure the config directory exists
        os.makedirs(get_user_config_dir(), exist_ok=True)

        with open(configfile_path, 'w', encoding='utf-8') as f:
            json.dump(config_data, f, ensure_ascii=False, indent=2)

        logger.info(f'Configuration saved successfully to {configfile_path}')
        return True
    except OSError as e:
        logger.error(f'Error saving config.json to {configfile_path}')
        logger.error(e)
        return False


def get_data_dirs():
    '''
    Return the XDG data directories, the user's first:
    $XDG_DATA_HOME followed by $XDG_DATA_DIRS
    '''
    return [GLib.get_user_data_dir()] + list(GLib.get_system_data_dirs())


def locate_data_file(name):
    """
    Find `name` under the XDG data directories.

    Returns:
        str: path of the first match, or None
    """
    for data_dir in get_data_dirs():
        path = os.path.join(data_dir, name)
        if os.path.exists(path):
            return path
    logger.debug(f'{name} is not found under {get_data_dirs()}')
    return None


def get_hanja_table_path(config):
    '''
    The hanja table named in config.json ("hanja_table") is looked up
    in the user config directory first; without one, libhangul's
    hanja.txt is searched in the XDG data directories.
    '''
    name = config.get('hanja_table', '')
    if name:
        if os.path.isabs(name):
            return name
        path = os.path.join(get_user_config_dir(), name)
        if os.path.exists(path):
            return path
        logger.warning(f'Specified hanja table {name} is not found under {get_user_config_dir()}')
    return locate_data_file(HANJA_TABLE_NAME)


def get_symbol_table_path(config):
    '''
    Same as get_hanja_table_path() for the optional symbol table.
    Returns None when there is none.
    '''
    name = config.get('symbol_table', '')
    if name:
        if os.path.isabs(name):
            return name
        path = os.path.join(get_user_config_dir(), name)
        if os.path.exists(path):
            return path
        logger.warning(f'Specified symbol table {name} is not found under {get_user_config_dir()}')
    for symbol_name in SYMBOL_TABLE_NAMES:
        path = os.path.join(get_datadir(), symbol_name)
        if os.path.exists(path):
            return path
    return locate_data_file(os.path.join('hangul', 'symbol.txt'))
