"""
The live settings shared by the console sessions and discovery.
"""
import logging

from configobj import ConfigObj

from ecpconsole.config.config import load_config, fetch_conf_path, ConfigurationError
from ecpconsole.support.events import EventSource

logger = logging.getLogger(__name__)


class SettingChangedEvent:
    """ a setting was changed. name is the dotted path of the setting, such as 'console.auto_scroll'. """
    def __init__(self, settings, name, old, new):
        self.settings = settings
        self.name = name
        self.old = old
        self.new = new


class Settings:
    """
    A view of the validated configuration. Changes made through set() are announced to `listeners`,
    so each session can react to a changed line budget or auto-scroll without polling.
    """

    def __init__(self, config: ConfigObj, log=logger):
        self.config = config
        self.listeners = EventSource()
        self.logger = log

    @classmethod
    def load(cls, **kwargs):
        """ loads the settings from the configuration files. See load_config() """
        return cls(load_config(**kwargs))

    @classmethod
    def defaults(cls):
        """ the settings as given by the default configuration alone, ignoring any user overrides. """
        return cls(load_config(user_dir=None))

    def get(self, name, default=None):
        value = fetch_conf_path(self.config, name.split('.'))
        return default if value is None else value

    def set(self, name, value):
        """
        Changes a setting, notifying the listeners when the value differs.
        :param name: the dotted path of the setting, 'section.key'
        """
        *sections, key = name.split('.')
        section = fetch_conf_path(self.config, sections)
        if section is None or key not in section:
            raise KeyError(name)
        old = section[key]
        if old == value:
            return False
        section[key] = value
        self.logger.debug("setting %s changed from %r to %r", name, old, value)
        self.listeners.fire(SettingChangedEvent(self, name, old, value))
        return True

    @property
    def auto_scroll(self) -> bool:
        return self.get('console.auto_scroll')

    @property
    def auto_wrap(self) -> bool:
        return self.get('console.auto_wrap')

    @property
    def max_output_lines(self) -> int:
        return self.get('console.max_output_lines')

    @property
    def ports(self):
        """ the console ports offered for connection, mapped to their descriptions. """
        ports = self.get('console.ports', {})
        return {int(port): description for port, description in ports.items()}

    @property
    def discovery(self):
        return self.get('discovery')

    @property
    def last_endpoint(self):
        return self.get('last.host'), self.get('last.port')

    def remember_endpoint(self, host, port):
        """ records the console last connected to. """
        self.set('last.host', host)
        self.set('last.port', port)

    def save(self, filename):
        """
        Writes the settings to filename, which can then be used as the user override.
        """
        config = ConfigObj(self.config.dict(), encoding='utf-8')
        config.filename = filename
        try:
            config.write()
        except OSError as e:
            raise ConfigurationError("unable to write %s: %s" % (filename, e)) from e
        return config

