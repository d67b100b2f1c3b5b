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


def _record(name, fields):
    # every field is optional so parsers can fill in what the API returned
    cls = collections.namedtuple(name, fields)
    cls.__new__.__defaults__ = (None,) * len(cls._fields)
    return cls


class ImageType(object):
    LINUX = 'LINUX'
    WINDOWS = 'WINDOWS'


class OperationStatus(object):
    IN_PROGRESS = 'InProgress'
    SUCCEEDED = 'Succeeded'
    FAILED = 'Failed'
    UNRECOGNIZED = 'UNRECOGNIZED'


class InstanceStatus(object):
    READY_ROLE = 'ReadyRole'
    STOPPED_VM = 'StoppedVM'
    STOPPED_DEALLOCATED = 'StoppedDeallocated'
    STOPPING_ROLE = 'StoppingRole'
    STOPPING_VM = 'StoppingVM'
    CREATING_VM = 'CreatingVM'
    STARTING_VM = 'StartingVM'
    CREATING_ROLE = 'CreatingRole'
    STARTING_ROLE = 'StartingRole'
    ROLE_STATE_UNKNOWN = 'RoleStateUnknown'
    BUSY_ROLE = 'BusyRole'
    PROVISIONING = 'Provisioning'
    PROVISIONING_FAILED = 'ProvisioningFailed'
    DELETING_VM = 'DeletingVM'


OSImage = _record('OSImage', [
    'name', 'locations', 'affinity_group', 'label', 'description', 'category',
    'os', 'media_link', 'logical_size_in_gb', 'eula', 'image_family',
    'published_date', 'icon_uri', 'small_icon_uri', 'privacy_uri',
    'pricing_detail_link', 'recommended_vm_size', 'is_premium', 'show_in_gui',
    'publisher_name'])

Location = _record('Location', ['name', 'display_name', 'available_services'])

RoleSize = _record('RoleSize', [
    'name', 'label', 'cores', 'memory_in_mb', 'supported_by_web_worker_roles',
    'supported_by_virtual_machines', 'max_data_disk_count',
    'web_worker_resource_disk_size_in_mb',
    'virtual_machine_resource_disk_size_in_mb'])

CloudService = _record('CloudService', [
    'name', 'location', 'affinity_group', 'label', 'status', 'created',
    'last_modified'])

VirtualIP = _record('VirtualIP', ['address', 'is_dns_programmed', 'name'])

InstanceEndpoint = _record('InstanceEndpoint', [
    'name', 'vip', 'public_port', 'local_port', 'protocol'])

RoleInstance = _record('RoleInstance', [
    'role_name', 'instance_name', 'instance_status', 'instance_size',
    'ip_address', 'power_state', 'host_name', 'instance_endpoints'])

InputEndpoint = _record('InputEndpoint', [
    'name', 'port', 'local_port', 'protocol', 'vip',
    'enable_direct_server_return'])

ConfigurationSet = _record('ConfigurationSet', [
    'configuration_set_type', 'input_endpoints', 'subnet_names',
    'static_virtual_network_ip_address', 'public_ips',
    'network_security_group'])

DataVirtualHardDisk = _record('DataVirtualHardDisk', [
    'host_caching', 'disk_name', 'lun', 'logical_disk_size_in_gb',
    'media_link'])

OSVirtualHardDisk = _record('OSVirtualHardDisk', [
    'host_caching', 'disk_name', 'lun', 'logical_disk_size_in_gb',
    'media_link', 'source_image_name', 'os'])

Role = _record('Role', [
    'role_name', 'os_version', 'role_type', 'configuration_sets',
    'data_virtual_hard_disks', 'os_virtual_hard_disk', 'role_size'])

Deployment = _record('Deployment', [
    'name', 'slot', 'status', 'label', 'virtual_ips', 'role_instance_list',
    'roles', 'virtual_network_name'])

StorageService = _record('StorageService', [
    'service_name', 'url', 'location', 'status', 'label', 'account_type'])

Availability = _record('Availability', ['result', 'reason'])

Operation = _record('Operation', [
    'id', 'status', 'http_status_code', 'error_code', 'error_message'])

Subnet = _record('Subnet', ['name', 'address_prefix'])

DnsServer = _record('DnsServer', ['name', 'address'])

VirtualNetworkSite = _record('VirtualNetworkSite', [
    'name', 'location', 'address_space', 'subnets'])

NetworkConfiguration = _record('NetworkConfiguration', [
    'dns', 'virtual_network_sites'])

ExternalEndpoint = _record('ExternalEndpoint', [
    'name', 'port', 'local_port', 'protocol'])


def inbound_tcp_to_local_port(port, local_port, name=None):
    return ExternalEndpoint(name=name or 'tcp_%s-%s' % (port, local_port),
                            port=port, local_port=local_port, protocol='tcp')
