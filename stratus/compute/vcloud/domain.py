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


class MediaType(object):
    ORG = 'application/vnd.vmware.vcloud.org+xml'
    VDC = 'application/vnd.vmware.vcloud.vdc+xml'
    ORG_NETWORK = 'application/vnd.vmware.vcloud.orgNetwork+xml'
    VAPP = 'application/vnd.vmware.vcloud.vApp+xml'
    VAPP_TEMPLATE = 'application/vnd.vmware.vcloud.vAppTemplate+xml'
    VM = 'application/vnd.vmware.vcloud.vm+xml'
    TASK = 'application/vnd.vmware.vcloud.task+xml'
    COMPOSE_VAPP_PARAMS = 'application/vnd.vmware.vcloud.composeVAppParams+xml'
    UNDEPLOY_VAPP_PARAMS = 'application/vnd.vmware.vcloud.undeployVAppParams+xml'


class Status(object):
    """ ``status`` codes of vCloud resource entities """
    FAILED_CREATION = -1
    UNRESOLVED = 0
    RESOLVED = 1
    DEPLOYED = 2
    SUSPENDED = 3
    POWERED_ON = 4
    WAITING_FOR_INPUT = 5
    UNKNOWN = 6
    UNRECOGNIZED = 7
    POWERED_OFF = 8
    INCONSISTENT_STATE = 9
    MIXED = 10


class TaskStatus(object):
    QUEUED = 'queued'
    PRE_RUNNING = 'preRunning'
    RUNNING = 'running'
    SUCCESS = 'success'
    ERROR = 'error'
    CANCELED = 'canceled'
    ABORTED = 'aborted'

    FAILED = (ERROR, CANCELED, ABORTED)


class FenceMode(object):
    BRIDGED = 'bridged'
    ISOLATED = 'isolated'
    NAT_ROUTED = 'natRouted'


Session = collections.namedtuple('Session', ['user', 'org', 'href', 'links'])

Org = collections.namedtuple('Org', ['name', 'full_name', 'href', 'links'])

Vdc = collections.namedtuple(
    'Vdc', ['id', 'name', 'href', 'resource_entities', 'available_networks', 'links'])

Network = collections.namedtuple('Network', ['name', 'href', 'fence_mode', 'tasks'])

Task = collections.namedtuple('Task', ['href', 'status', 'operation', 'error_message'])

NetworkConnection = collections.namedtuple(
    'NetworkConnection',
    ['network', 'index', 'ip_address', 'external_ip_address', 'mac_address',
     'is_connected', 'allocation_mode'])

GuestCustomizationSection = collections.namedtuple(
    'GuestCustomizationSection',
    ['enabled', 'admin_password_enabled', 'admin_password_auto',
     'admin_password', 'reset_password_required', 'computer_name'])

Vm = collections.namedtuple(
    'Vm',
    ['id', 'name', 'href', 'type', 'status', 'links', 'tasks',
     'network_connections', 'operating_system_section',
     'virtual_hardware_section', 'guest_customization_section'])

VApp = collections.namedtuple(
    'VApp', ['id', 'name', 'href', 'status', 'links', 'tasks', 'children'])

VAppTemplate = collections.namedtuple(
    'VAppTemplate', ['id', 'name', 'href', 'description', 'status', 'children', 'links'])

QueryResultRecord = collections.namedtuple('QueryResultRecord', ['record_type', 'attributes'])


def find_link(links, rel=None, type=None):
    for link in links:
        if rel is not None and (link.rel or '').lower() != rel.lower():
            continue
        if type is not None and link.type != type:
            continue
        return link
    return None
