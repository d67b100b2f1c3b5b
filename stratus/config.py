# Copyright 2014 Isotoma Limited
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#   http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

import os
import logging

import yaml

from stratus import error
from stratus.util import get_driver_from_config
from stratus.compute import providers

logger = logging.getLogger("stratus.config")

DEFAULT_PATH = "~/.stratus.yml"


def default_path():
    return os.path.expanduser(os.environ.get("STRATUS_CONFIG", DEFAULT_PATH))


class Config(object):

    """
    The profiles a user has set up, read from a YAML file::

        work-docker:
            driver: DOCKER
            host: docker.example.com
            port: 2375

        azure:
            driver: AZURE
            subscription_id: 3a5a7e4e-...
            key_file: ~/.azure/management.pem

    Each profile names a driver id from ``stratus.compute.providers.Provider``
    and the arguments its constructor takes.
    """

    def __init__(self, path=None):
        self.path = path or default_path()
        self._profiles = None

    def load(self):
        logger.debug("Loading profiles from %s", self.path)
        try:
            with open(self.path) as fp:
                data = yaml.safe_load(fp)
        except IOError as e:
            raise error.ConfigError("Unable to read '%s': %s" % (self.path, e.strerror))
        except yaml.YAMLError as e:
            raise error.ParseError("'%s' is not valid YAML: %s" % (self.path, e))

        if data is None:
            data = {}
        if not isinstance(data, dict):
            raise error.ConfigError("'%s' should contain a mapping of profile names to profiles" % self.path)
        return data

    @property
    def profiles(self):
        if self._profiles is None:
            self._profiles = self.load()
        return self._profiles

    def get_profile(self, name):
        try:
            return self.profiles[name]
        except KeyError:
            raise error.ConfigError("There is no profile called '%s' in '%s'" % (name, self.path))

    def get_driver(self, name):
        """ Find the driver a profile names and marshall the arguments to it
        from the rest of the profile. """
        profile = self.get_profile(name)
        return get_driver_from_config(profile, providers.get_driver, providers.Provider)
