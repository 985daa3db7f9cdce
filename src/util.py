import json
import logging
import os

logger = logging.getLogger(__name__)

NAME_TO_LOGGING_LEVEL = {
    'DEBUG': logging.DEBUG,
    'INFO': logging.INFO,
    'WARNING': logging.WARNING,
    'ERROR': logging.ERROR,
    'CRITICAL': logging.CRITICAL,
}


def get_package_name():
    '''
    returns 'tcime'
    '''
    return 'tcime'


def get_version():
    return '0.3.0'


def get_datadir():
    '''
    Return the path to the data directory shipped with the package
    (default config.json and default.schema.json live here).
    '''
    env_dir = os.environ.get('TCIME_DATADIR')
    if env_dir:
        return env_dir
    return os.path.join(os.path.dirname(os.path.dirname(os.path.abspath(__file__))), 'data')


def get_default_config_path():
    '''
    Return the path to the default config file in the data directory.
    This is the config.json that gets copied to the user's config dir on first run.
    '''
    return os.path.join(get_datadir(), 'config.json')


def get_homedir():
    '''
    Return the path to the $HOME directory.
    '''
    return os.path.expanduser('~')


def get_user_config_dir():
    '''
    Return the path to the config directory under $HOME.
    Typically, it would be $HOME/.config/tcime
    '''
    base = os.environ.get('XDG_CONFIG_HOME') or os.path.join(get_homedir(), '.config')
    return os.path.join(base, get_package_name())


def get_user_schema_dir():
    """
    Return the directory holding user schema documents (*.schema.json).
    """
    return os.path.join(get_user_config_dir(), 'schemas')


def get_user_tables_dir():
    """
    Return the directory holding compiled dictionary tables (*.json).
    """
    return os.path.join(get_user_config_dir(), 'tables')


def load_json_file(path):
    '''
    Load a JSON document from path.

    Returns:
        The decoded document, or None if the file is missing or malformed.
    '''
    if not os.path.exists(path):
        logger.warning(f'JSON file not found: {path}')
        return None
    try:
        with open(path, encoding='utf-8') as f:
            return json.load(f)
    except json.decoder.JSONDecodeError as e:
        logger.error(f'Error parsing JSON file: {path}')
        logger.error(e)
    except OSError as e:
        logger.error(f'Error reading JSON file: {path}')
        logger.error(e)
    return None


def get_default_config_data():
    default_config_path = get_default_config_path()
    if not os.path.exists(default_config_path):
        logger.error(f'config.json is not found under {default_config_path}. Please check that installation was done without problem!')
        return None
    return load_json_file(default_config_path)


def get_config_data():
    '''
    Load the config JSON file from $HOME/.config/tcime.
    When the file is not present (e.g., after initial installation), the
    default config.json is copied from the data directory.

    Keys missing from the user file are filled in from the default config and
    keys whose type differs from the default are reset, each with a warning.

    Returns:
        tuple: (config_data, warnings_string) where warnings_string is empty if no warnings
    '''
    configfile_path = os.path.join(get_user_config_dir(), 'config.json')
    default_config_path = get_default_config_path()
    default_config = get_default_config_data() or {}
    warnings = ""

    if not os.path.exists(configfile_path):
        warning_msg = f'config.json is not found under {get_user_config_dir()} . Copying the default config.json from {default_config_path} ..'
        logger.warning(warning_msg)
        warnings = warning_msg
        os.makedirs(get_user_config_dir(), exist_ok=True)
        with open(configfile_path, 'w', encoding='utf-8') as f:
            json.dump(default_config, f, ensure_ascii=False)
        return default_config, warnings
    try:
        with open(configfile_path, encoding='utf-8') as f:
            config_data = json.load(f)
    except json.decoder.JSONDecodeError as e:
        logger.error(f'Error loading the config.json under {get_user_config_dir()}')
        logger.error(e)
        logger.error(f'Using (but not copying) the default config.json from {default_config_path} ..')
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
        os.makedirs(get_user_config_dir(), exist_ok=True)
        with open(configfile_path, 'w', encoding='utf-8') as f:
            json.dump(config_data, f, ensure_ascii=False, indent=2)
        logger.info(f'Configuration saved successfully to {configfile_path}')
        return True
    except OSError as e:
        logger.error(f'Error saving config.json to {configfile_path}')
        logger.error(e)
        return False


class Preferences:
    """
    Read-mostly view over the config dict, consulted by the rule engine,
    the composer and the candidate resolver.

    Every getter falls back to a documented default when the key is absent,
    so a stale or partial config never breaks lookups.

    The only write path is the per-schema fuzzy-rule state, which is persisted
    through the saver callable (save_config_data when none is given).
    """

    def __init__(self, config=None, saver=None):
        self._config = config if config is not None else {}
        self._saver = saver

    def _get(self, key, default):
        value = self._config.get(key, default)
        if value is None or type(value) != type(default):
            logger.debug(f'Preference "{key}" missing or mistyped, using default {default!r}')
            return default
        return value

    @property
    def full_pinyin(self):
        return self._get('full_pinyin', False)

    @property
    def show_romanization(self):
        return self._get('show_romanization', False)

    @property
    def association(self):
        return self._get('association', True)

    @property
    def single_char(self):
        return self._get('single_char', False)

    @property
    def page_size(self):
        return self._get('page_size', 9)

    @property
    def page_width(self):
        return self._get('page_width', 0)

    @property
    def cangjie_simplified(self):
        return self._get('cangjie_simplified', False)

    @property
    def auto_select_max_length(self):
        return self._get('auto_select_max_length', False)

    @property
    def full_shape(self):
        return self._get('full_shape', False)

    @property
    def scheme(self):
        return self._get('scheme', 'cangjie')

    @property
    def log_level(self):
        return NAME_TO_LOGGING_LEVEL.get(self._get('log_level', 'WARNING'), logging.WARNING)

    def fuzzy_state(self, schema_id):
        """
        Return the persisted fuzzy toggle string (e.g. "0101") for schema_id,
        or an empty string when nothing was stored yet.
        """
        states = self._get('fuzzy', {})
        value = states.get(str(schema_id), '')
        return value if isinstance(value, str) else ''

    def set_fuzzy_state(self, schema_id, state):
        """
        Persist the fuzzy toggle string for schema_id.

        Returns:
            bool: True if the saver reported success
        """
        states = self._config.get('fuzzy')
        if not isinstance(states, dict):
            states = {}
            self._config['fuzzy'] = states
        states[str(schema_id)] = state
        saver = self._saver or save_config_data
        return saver(self._config)
