# Licensed to the Apache Software Foundation (ASF) under one or more
# contributor license agreements.  See the NOTICE file distributed with
# this work for additional information regarding copyright ownership.
# The ASF licenses this file to You under the Apache License, Version 2.0
# (the "License"); you may not use this file except in compliance with
# the License.  You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""
The vocabulary every provider module shares: the response classes the
connections use, the errors the drivers raise, and the small converters that
turn provider labels into the provider-agnostic model.
"""

import re
import time
import socket
import datetime
import collections

from dateutil import parser as date_parser
from dateutil import tz

from libcloud.utils.py3 import httplib
from libcloud.utils.networking import is_private_subnet, is_valid_ip_address

from libcloud.common.types import LibcloudError, InvalidCredsError
from libcloud.common.base import JsonResponse, XmlResponse
from libcloud.compute.base import NodeSize


class OperationTimeout(LibcloudError):
    """ An asynchronous provider operation didn't finish in time. """


class OperationFailed(LibcloudError):
    """ An asynchronous provider operation finished, but not successfully. """


class UnsupportedOperation(LibcloudError):
    """ The provider has no equivalent of the requested operation. """


class OsFamily(object):
    UNRECOGNIZED = 'unrecognized'
    CENTOS = 'centos'
    UBUNTU = 'ubuntu'
    RHEL = 'rhel'
    SUSE = 'suse'
    DEBIAN = 'debian'
    WINDOWS = 'windows'
    OEL = 'oel'
    COREOS = 'coreos'
    FEDORA = 'fedora'


class LocationScope(object):
    PROVIDER = 'PROVIDER'
    REGION = 'REGION'
    ZONE = 'ZONE'
    HOST = 'HOST'


class ImageStatus(object):
    AVAILABLE = 'AVAILABLE'
    PENDING = 'PENDING'
    DELETED = 'DELETED'
    ERROR = 'ERROR'
    UNRECOGNIZED = 'UNRECOGNIZED'


OperatingSystem = collections.namedtuple(
    'OperatingSystem', ['family', 'version', 'description', 'arch', 'is_64bit'])
OperatingSystem.__new__.__defaults__ = (OsFamily.UNRECOGNIZED, None, None, None, False)


# First match wins.
_FAMILIES = [
    (re.compile(r'centos', re.I), OsFamily.CENTOS),
    (re.compile(r'ubuntu', re.I), OsFamily.UBUNTU),
    (re.compile(r'red ?hat|rhel', re.I), OsFamily.RHEL),
    (re.compile(r'suse|sles', re.I), OsFamily.SUSE),
    (re.compile(r'debian', re.I), OsFamily.DEBIAN),
    (re.compile(r'windows|win2k', re.I), OsFamily.WINDOWS),
    (re.compile(r'oracle|\boel\b', re.I), OsFamily.OEL),
    (re.compile(r'coreos', re.I), OsFamily.COREOS),
    (re.compile(r'fedora', re.I), OsFamily.FEDORA),
]

_VERSION = re.compile(r'\d+(?:\.\d+)*')


def os_family_from_string(text):
    if not text:
        return OsFamily.UNRECOGNIZED
    for pattern, family in _FAMILIES:
        if pattern.search(text):
            return family
    return OsFamily.UNRECOGNIZED


def version_from_string(text):
    if not text:
        return None
    match = _VERSION.search(text)
    if match:
        return match.group(0)
    return None


def placeholder_sizes(driver):
    """ The hardware profiles of providers that don't publish any. """
    sizes = []
    for name, ram in (('micro', 512), ('small', 1024), ('medium', 2048), ('large', 3072)):
        sizes.append(NodeSize(
            id=name,
            name=name,
            ram=ram,
            disk=0,
            bandwidth=0,
            price=0,
            driver=driver,
            extra={'hypervisor': 'lxc', 'cores': 1},
            ))
    return sizes


def wait_for(predicate, timeout, interval=5, what='operation'):
    """ Call ``predicate`` until it returns something truthy and return that.

    Raises ``OperationTimeout`` once ``timeout`` seconds have passed without
    success. """
    deadline = time.time() + timeout
    while True:
        result = predicate()
        if result:
            return result
        if time.time() >= deadline:
            raise OperationTimeout('%s has not completed within %ss' % (what, timeout))
        time.sleep(interval)


def parse_date(value):
    """ Providers hand out ISO 8601 strings or seconds since the epoch. """
    if value is None or value == '':
        return None
    if isinstance(value, (int, float)):
        return datetime.datetime.fromtimestamp(value, tz=tz.tzutc())
    try:
        return date_parser.parse(value)
    except (ValueError, OverflowError):
        return None


def split_ips(addresses):
    """ Returns ``(public_ips, private_ips)`` """
    public_ips, private_ips = [], []
    for address in addresses:
        if not address:
            continue
        if is_valid_ip_address(address, socket.AF_INET) and is_private_subnet(address):
            private_ips.append(address)
        else:
            public_ips.append(address)
    return public_ips, private_ips


class JsonApiResponse(JsonResponse):

    valid_response_codes = [httplib.OK, httplib.ACCEPTED, httplib.CREATED,
                            httplib.NO_CONTENT]

    def parse_error(self):
        if self.status == httplib.UNAUTHORIZED:
            raise InvalidCredsError('Invalid credentials')
        return self.body

    def success(self):
        return self.status in self.valid_response_codes


class XmlApiResponse(XmlResponse):

    valid_response_codes = [httplib.OK, httplib.ACCEPTED, httplib.CREATED,
                            httplib.NO_CONTENT]

    def parse_error(self):
        if self.status == httplib.UNAUTHORIZED:
            raise InvalidCredsError('Invalid credentials')
        return self.body

    def success(self):
        return self.status in self.valid_response_codes
