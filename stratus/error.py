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

"""

Classes that represent errors within stratus.

These are the errors raised by the configuration layer and the command line
shell, as opposed to the errors raised by the compute drivers themselves
(which are libcloud errors and live in ``stratus.compute.base``).

All stratus errors have a returncode, which is returned from the stratus
program if these errors occur. Feel free to rely on these, they should be
stable.
"""


class Error(Exception):
    """ Base class for all stratus specific exceptions. """
    returncode = 253

    def __init__(self, msg=""):
        super(Error, self).__init__(msg)
        self.msg = msg

    def __str__(self):
        return "%s: %s" % (self.__class__.__name__, self.msg)


class ParseError(Error):
    """ Root of exceptions that are caused by an error in input. """

    returncode = 128
    """ returns error code 128 to the invoking environment. """


class ConfigError(ParseError):
    """ The configuration file could not be read, or a profile in it is not
    shaped the way a driver profile should be. """

    returncode = 129
    """ returns error code 129 to the invoking environment. """


class DriverNotFound(ConfigError):
    """ A profile names a driver that isn't registered. """

    returncode = 130
    """ returns error code 130 to the invoking environment. """


class MissingArgument(ConfigError):
    """ A driver or template needs a value that wasn't provided. """

    returncode = 131
    """ returns error code 131 to the invoking environment. """


class TemplateError(Error):
    """ A request template could not be rendered. """

    returncode = 132
    """ returns error code 132 to the invoking environment. """


class InvalidCredsError(Error):
    """ The provider refused the credentials in the profile. """

    returncode = 133
    """ returns error code 133 to the invoking environment. """


class NoMatchingNode(Error):
    """ A command named a node id the profile's driver doesn't list. """

    returncode = 134
    """ returns error code 134 to the invoking environment. """
