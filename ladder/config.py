# SPDX-License-Identifier: GPL-2.0-or-later
"""Configuration profile loading."""

import os
import os.path
import yaml

from ladder.errors import LadderError

DEFAULT_CFG_DIR = '/etc/ladder'
LOADED_CONFIGS = {}


class ConfigReadError(LadderError):
    pass


def load(profile):
    """Load (if needed) and return the configuration file for `profile`.

    Profile configurations are cached. Look for configuration profiles in the
    "CFG_DIR" environment variable if it is set, or in the DEFAULT_CFG_DIR
    otherwise. Raise a ConfigReadError if no such file exist.
    """

    try:
        return LOADED_CONFIGS[profile]
    except KeyError:
        pass

    cfg_filename = '{}.yml'.format(profile)
    cfg_directory = os.environ.get('CFG_DIR', DEFAULT_CFG_DIR)
    cfg_path = os.path.join(cfg_directory, cfg_filename)

    cfg = load_file(cfg_path)
    LOADED_CONFIGS[profile] = cfg
    return cfg


def load_file(path):
    """Read one YAML file, an empty file being an empty mapping."""
    try:
        with open(path, 'r') as cfg_fp:
            cfg = yaml.safe_load(cfg_fp)
    except IOError:
        raise ConfigReadError("%s does not exist (specify CFG_DIR?)" % path)
    except yaml.YAMLError as e:
        raise ConfigReadError("%s is not valid YAML: %s" % (path, e))
    return cfg or {}


def section(config, name):
    """Returns the `name` section of `config`, empty if absent."""
    return config.get(name) or {}
