import importlib
import logging
import os
import platform

from configobj import ConfigObj, ConfigObjError, Section, flatten_errors
from validate import Validator

logger = logging.getLogger(__name__)

# The default extension for configuration files
config_extension = '.cfg'

# the configuration shipped with the package, beside the indi package's modules
package_directory = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))

# the modules whose attributes the configuration sets
configured_modules = ('indi.client', 'indi.protocol.codec', 'indi.server')


def config_flavor(name, flavor=None):
    return name if not flavor else name + '.' + flavor


def config_filename(name, directory=None):
    """
    Determines the location of a config file in the given directory.
    """
    return os.path.join(directory, name + config_extension)


def load_config_file_base(file, must_exist=True):
    """
    Loads a configuration file
    :param file:        The configuration file to load
    :param must_exist:  when True, the file must exist or an exception is thrown.
    :return: The ConfigObj instance for the file.
    """
    try:
        return ConfigObj(file, interpolation='Template', file_error=must_exist) \
            if must_exist or os.path.exists(file) else ConfigObj()
    except ConfigObjError as e:
        raise type(e)(str(e) + ' at ' + file)


def config_flavor_file(name, directory, subpart=None) -> ConfigObj:
    """
    Loads a specialization of a config file. The configuration file is expected to be named
    after the base, followed by a period and then the specialization, if the specialization is given,
    otherwise just the base name. A missing file gives an empty configuration.
    """
    return load_config_file_base(config_filename(config_flavor(name, subpart), directory), False)


def load_schema(name, directory) -> ConfigObj:
    file = config_filename(config_flavor(name, 'schema'), directory)
    return ConfigObj(file, list_values=False, _inspec=True, file_error=True)


def map_os_name(name):
    """
    >>> map_os_name('Windows')
    'windows'
    >>> map_os_name("Darwin")
    'osx'
    """
    name = name.lower()
    if name == 'darwin':
        name = 'osx'
    return name


def os_name():
    return map_os_name(platform.system())


def load_config(name, directory, override_directory=None):
    """
        Loads all the configuration files that relate to the given name.
        Configurations are loaded in this order, later ones taking precedence:
        - the base configuration
        - the default specialization
        - the platform specialization
        - the user override in the home directory
        - the file in the override directory, when given
        The configurations are flattened into a single configuration, and then validated
        against the "schema" specialization, which also supplies the defaults.
    :directory: the location of the configuration files
    :return: the validated ConfigObj
    """
    config = ConfigObj()
    config.merge(config_flavor_file(name, directory))
    config.merge(config_flavor_file(name, directory, 'default'))
    config.merge(config_flavor_file(name, directory, os_name()))
    config.merge(load_config_file_base(os.path.expanduser('~/' + name + config_extension), must_exist=False))
    if override_directory:
        config.merge(load_config_file_base(config_filename(name, override_directory), must_exist=True))

    config.configspec = load_schema(name, directory)
    result = config.validate(Validator())
    if result is not True:
        failures = []
        for sections, key, error in flatten_errors(config, result):
            failures.append('%s%s: %s' % ('.'.join(sections + ([key] if key else [])),
                                          '' if key else ' (section)', error or 'missing'))
        raise ConfigObjError("the config file %s failed validation: %s" % (name, '; '.join(failures)))
    return config


def fetch_conf_path(conf: Section, path):
    """
    Retrieves the named configuration section
    :param conf:        The root configuration
    :param path:        An iterable that lists the names of the sections to resolve
    :return: The configuration section identified by the path, or None
    """
    for p in path:
        conf = conf.get(p, None)
        if conf is None:
            return None
    return conf


def apply_conf_path(conf: Section, name_parts, target):
    """
    Applies a configuration path to a given target object
    :param conf:        The root configuration object
    :param name_parts:  The path of the configuration to apply
    :param target:      The target object that receives the configured values
    """
    conf = fetch_conf_path(conf, name_parts)
    if conf:
        apply_conf(conf, target)


def apply_conf(conf: Section, target):
    """
    Applies the values contained in a configuration section to a target object.
    Each value is set on the attribute with the same name, or on the upper case
    module constant, such as poll_interval -> POLL_INTERVAL. Subsections and names
    the target does not have are skipped.
    """
    for k, v in conf.items():
        if isinstance(v, Section):
            continue
        for attr in (k, k.upper()):
            if hasattr(target, attr):
                setattr(target, attr, v)
                break


def configure_module(module, conf):
    """
    Applies the configuration to the given module. The settings for a module are nested in sections
    that follow the module's location, e.g. [indi] [[protocol]] [[[codec]]].
    """
    apply_conf_path(conf, module.__name__.split('.'), module)


def configure(override_directory=None, name='indi'):
    """
    Loads the indi configuration and applies it to the configurable modules.
    :param override_directory: a directory holding an indi.cfg whose values take precedence
    :return: the configuration applied
    """
    conf = load_config(name, package_directory, override_directory)
    for module_name in configured_modules:
        configure_module(importlib.import_module(module_name), conf)
    logger.debug("applied configuration %s" % conf.dict())
    return conf
