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

import collections


class Location(object):
    DE_FKB = 'de/fkb'
    DE_FRA = 'de/fra'
    US_LAS = 'us/las'
    US_LASDEV = 'us/lasdev'
    UNRECOGNIZED = 'UNRECOGNIZED'

    ALL = (DE_FKB, DE_FRA, US_LAS, US_LASDEV)

    @classmethod
    def from_id(cls, value):
        if value in cls.ALL:
            return value
        return cls.UNRECOGNIZED


class ProvisioningState(object):
    INACTIVE = 'INACTIVE'
    INPROCESS = 'INPROCESS'
    AVAILABLE = 'AVAILABLE'
    DELETED = 'DELETED'
    ERROR = 'ERROR'
    UNRECOGNIZED = 'UNRECOGNIZED'

    ALL = (INACTIVE, INPROCESS, AVAILABLE, DELETED, ERROR)

    @classmethod
    def from_value(cls, value):
        if value in cls.ALL:
            return value
        return cls.UNRECOGNIZED


class VirtualMachineState(object):
    NOSTATE = 'NOSTATE'
    RUNNING = 'RUNNING'
    BLOCKED = 'BLOCKED'
    PAUSED = 'PAUSED'
    SHUTDOWN = 'SHUTDOWN'
    SHUTOFF = 'SHUTOFF'
    CRASHED = 'CRASHED'


class ImageType(object):
    HDD = 'HDD'
    CDROM = 'CDROM'


DataCenter = collections.namedtuple('DataCenter', ['id', 'name', 'version', 'location', 'state'])
DataCenter.__new__.__defaults__ = (None,) * 4

Server = collections.namedtuple('Server', [
    'id', 'name', 'cores', 'ram', 'internet_access', 'ips', 'provisioning_state',
    'virtual_machine_state', 'creation_time', 'last_modification_time',
    'os_type', 'availability_zone', 'data_center_id'])

Image = collections.namedtuple('Image', [
    'id', 'name', 'size', 'type', 'location', 'os_type', 'public', 'writeable',
    'bootable'])
