import logging
import os
import platform

from configobj import ConfigObj, Section, ConfigObjError, flatten_errors
from validate import Validator

logger = logging.getLogger(__name__)

# The default extension for configuration files
config_extension = '.cfg'

# the directory holding the default and schema configurations
config_dir = os.path.dirname(os.path.abspath(__file__))

# platform.system() names that use a differently named flavor
_platform_flavors = {'darwin': 'osx'}


class ConfigurationError(ConfigObjError):
    """ The configuration files could not be read or failed validation. """


def config_flavor(name, flavor=None):
    """
    >>> config_flavor('ecpconsole', 'schema')
    'ecpconsole.schema'
    >>> config_flavor('ecpconsole')
    'ecpconsole'
    """
    configname = name if not flavor else name + '.' + flavor
    return configname


def platform_flavor(system=None):
    """
    >>> platform_flavor('Darwin'), platform_flavor('Linux'), platform_flavor('Windows')
    ('osx', 'linux', 'windows')
    """
    system = (system or platform.system()).lower()
    return _platform_flavors.get(system, system)


def config_filename(name, directory=None):
    """
    Determines the location of a config file. Without a directory, the file is located beside this module.
    """
    return os.path.join(directory or config_dir, name + config_extension)


def load_config_file_base(file, must_exist=True, spec=False):
    """
    Loads a configuration file
    :param file:        The configuration file to load
    :param must_exist:  when True, the file must exist or ConfigurationError is raised.
    :param spec:        when True, the file is a configspec. Check arguments are kept whole.
    :return: The ConfigObj instance for the file.
    """
    if not os.path.exists(file):
        if must_exist:
            raise ConfigurationError("configuration file %s does not exist" % file)
        return ConfigObj()
    try:
        if spec:
            return ConfigObj(file, list_values=False, _inspec=True, encoding='utf-8')
        return ConfigObj(file, interpolation='Template', encoding='utf-8')
    except ConfigObjError as e:
        raise ConfigurationError("unable to parse %s: %s" % (file, e)) from e


def config_flavor_file(name, directory=None, flavor=None, must_exist=True, spec=False) -> ConfigObj:
    """
    Loads a specialization of a config file. The configuration file is expected to be named
    after the base, followed by a period and then the specialization, if the specialization is given,
    otherwise just the base name.
    :param name:    The name of the base configuration
    :param flavor: The name of the specialization.
    :return: The ConfigObj for the configuration file.
    """
    file = config_filename(config_flavor(name, flavor), directory)
    return load_config_file_base(file, must_exist, spec)


def load_config(name='ecpconsole', directory=None, user_dir='~', local_dir=None):
    """
        Loads all the configuration files that relate to the given name.
        Configurations are merged in this order, later files overriding earlier ones:
        - the default specialization
        - the platform specialization
        - the user override, in user_dir
        - the local override, in local_dir, or beside the default configuration
        The configurations are flattened into a single configuration, and then validated
        against a configuration specialization "schema", which also supplies the values
        not given by any file.
    :param name: the base name of the configuration to load.
    :param user_dir: the directory of the user override, or None to skip the user and local overrides.
    :raises ConfigurationError: when a file cannot be parsed or the result fails validation
    """
    config = ConfigObj()
    config.merge(config_flavor_file(name, directory, 'default'))
    config.merge(config_flavor_file(name, directory, platform_flavor(), must_exist=False))
    if user_dir is not None:
        user_config = config_filename(name, os.path.expanduser(user_dir))
        config.merge(load_config_file_base(user_config, must_exist=False))
        config.merge(config_flavor_file(name, local_dir or directory, must_exist=False))

    config.configspec = config_flavor_file(name, directory, 'schema', must_exist=True, spec=True)
    validate_config(config)
    return config


def validate_config(config: ConfigObj):
    """ validates the configuration against its configspec, filling in default values. """
    result = config.validate(Validator(), preserve_errors=True)
    if result is not True:
        failures = []
        for section_list, key, error in flatten_errors(config, result):
            section = '.'.join(section_list) or '(root)'
            if key is not None:
                failures.append('"%s" in section "%s": %s' % (key, section, error or 'missing'))
            else:
                failures.append('missing section "%s"' % section)
        for failure in failures:
            logger.error("configuration: %s", failure)
        raise ConfigurationError("the config failed validation: %s" % '; '.join(failures))
    return config


def fetch_conf_path(conf: Section, path):
    """
    Retrieves the named configuration section
    :param conf:        The root configuration
    :param path:        An iterable that lists the names of the sections to resolve
    :return: The configuration object identified by the path, or None when a section is missing.

    >>> fetch_conf_path({'console': {'auto_scroll': True}}, ['console', 'auto_scroll'])
    True
    >>> fetch_conf_path({'console': {}}, ['last', 'host']) is None
    True
    """
    for p in path:    # lookup specific section
        conf = conf.get(p, None)
        if conf is None:
            return
    return conf
