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
XStream (http://www.xstream.dk) driver.

XStream fronts a VMware estate with an OData API. Templates are virtual
machines flagged ``IsTemplate``, so images and nodes come out of the same
endpoint with different ``$filter`` queries.
"""

import json
import base64
import logging

from libcloud.utils.py3 import httplib
from libcloud.utils.py3 import b

from libcloud.common.types import LibcloudError
from libcloud.common.exceptions import BaseHTTPError
from libcloud.common.base import ConnectionUserAndKey
from libcloud.compute.types import NodeState
from libcloud.compute.base import Node, NodeDriver, NodeImage, NodeSize

from stratus.compute.base import JsonApiResponse, OperatingSystem, OsFamily
from stratus.compute.base import ImageStatus, UnsupportedOperation
from stratus.compute.base import parse_date, placeholder_sizes
from stratus.compute.providers import Provider

logger = logging.getLogger("stratus.compute.xstream")

VIRTUAL_MACHINES_FILTER = "IsTemplate eq false and IsRemoved eq false"
VIRTUAL_MACHINE_FILTER = "IsRemoved eq false"
TEMPLATES_FILTER = "IsTemplate eq true and IsRemoved eq false and TenantID eq "

CENTOS = "CentOS"
UBUNTU = "ubuntu"
RHEL = "Red Hat Enterprise Linux"

UNRECOGNIZED = "UNRECOGNIZED"

NODE_STATE_MAP = {
    'PoweredOn': NodeState.RUNNING,
    'PoweredOff': NodeState.STOPPED,
    'Suspended': NodeState.SUSPENDED,
}


def os_family(os_name):
    if os_name:
        if os_name.startswith(CENTOS):
            return OsFamily.CENTOS
        elif os_name.startswith(UBUNTU):
            return OsFamily.UBUNTU
        elif os_name.startswith(RHEL):
            return OsFamily.RHEL
    return OsFamily.UNRECOGNIZED


def os_version(os_full_name):
    """ Pull the release out of an ``OSFullName`` such as
    ``CentOS 6.5 (64-bit)`` by position. """
    version = UNRECOGNIZED
    if not os_full_name:
        return version
    if os_full_name.startswith(CENTOS):
        version = os_full_name[len(CENTOS) + 1:len(CENTOS) + 7]
    elif os_full_name.startswith(UBUNTU):
        version = os_full_name[len(UBUNTU):len(UBUNTU) + 1]
    elif os_full_name.startswith(RHEL):
        version = os_full_name[len(RHEL) + 1:len(RHEL) + 2]
    logger.debug("os version for item: %s is %s", os_full_name, version)
    return version


def _values(result):
    # OData may or may not wrap collections
    if isinstance(result, dict) and 'value' in result:
        return result['value']
    if isinstance(result, list):
        return result
    if not result:
        return []
    return [result]


class XStreamResponse(JsonApiResponse):

    def parse_error(self):
        body = super(XStreamResponse, self).parse_error()
        try:
            return json.loads(body).get('Message', body)
        except (ValueError, TypeError, AttributeError):
            return body


class XStreamConnection(ConnectionUserAndKey):

    responseCls = XStreamResponse

    def add_default_headers(self, headers):
        user_b64 = base64.b64encode(b('%s:%s' % (self.user_id, self.key)))
        headers['Authorization'] = 'Basic %s' % (user_b64.decode('utf-8'))
        headers['Content-Type'] = 'application/json'
        headers['Accept'] = 'application/json'
        return headers


class XStreamNodeDriver(NodeDriver):

    type = Provider.XSTREAM
    name = 'XStream'
    website = 'http://www.xstream.dk'
    connectionCls = XStreamConnection
    features = {'create_node': ['password']}

    def __init__(self, key, secret, host, port=None, secure=True,
                 api_version='1.3', tenant_id=None, **kwargs):
        self.tenant_id = tenant_id
        super(XStreamNodeDriver, self).__init__(key=key, secret=secret,
                                                secure=secure, host=host,
                                                port=port,
                                                api_version=api_version,
                                                **kwargs)

    def _path(self, path):
        return '/api/v%s%s' % (self.api_version, path)

    def _list(self, odata_filter):
        try:
            result = self.connection.request(
                self._path('/VirtualMachine'),
                params={'$filter': odata_filter}).object
        except BaseHTTPError as e:
            if e.code == httplib.NOT_FOUND:
                return []
            raise
        return _values(result)

    def ex_list_templates(self):
        if not self.tenant_id:
            raise LibcloudError('A tenant_id is needed to list templates', driver=self)
        return self._list(TEMPLATES_FILTER + self.tenant_id)

    def list_images(self):
        return [self._to_image(vm) for vm in self.ex_list_templates()]

    def list_sizes(self):
        return placeholder_sizes(self)

    def list_locations(self):
        return []

    def list_nodes(self, ex_resolve_images=True):
        images = {}
        if ex_resolve_images and self.tenant_id:
            images = dict((i.id, i) for i in self.list_images())
        return [self._to_node(vm, images) for vm in self._list(VIRTUAL_MACHINES_FILTER)]

    def ex_get_node(self, node_id):
        """ The node, or None when there is no such virtual machine """
        try:
            result = self.connection.request(
                self._path('/VirtualMachine/%s' % node_id),
                params={'$filter': VIRTUAL_MACHINE_FILTER}).object
        except BaseHTTPError as e:
            if e.code == httplib.NOT_FOUND:
                return None
            raise
        values = _values(result)
        if not values:
            return None
        return self._to_node(values[0])

    def _action(self, node_id, action):
        result = self.connection.request(
            self._path('/VirtualMachine/%s/%s' % (node_id, action)),
            method='POST')
        return result.status in (httplib.OK, httplib.ACCEPTED, httplib.NO_CONTENT)

    def destroy_node(self, node):
        return self._action(node.id, 'Remove')

    def reboot_node(self, node):
        return self._action(node.id, 'RebootOS')

    def ex_power_on(self, node):
        return self._action(node.id, 'PowerOn')

    def ex_power_off(self, node):
        return self._action(node.id, 'PowerOff')

    def ex_suspend_node(self, node):
        raise UnsupportedOperation('suspend not supported', driver=self)

    def ex_resume_node(self, node):
        raise UnsupportedOperation('resume not supported', driver=self)

    def ex_mark_as_template(self, node):
        result = self.connection.request(
            self._path('/VirtualMachine/MarkAsTemplate'),
            data=json.dumps(node.id), method='POST')
        return result.status in (httplib.OK, httplib.ACCEPTED, httplib.NO_CONTENT)

    def create_node(self, name, size, image, ex_login_user=None,
                    ex_login_password=None, ex_dns_name=None,
                    ex_comment=None):
        payload = {
            'Name': name,
            'TenantID': self.tenant_id,
            'SourceTemplateID': image.id,
            'NumCpu': size.extra.get('cores', 1),
            'RamAllocatedMB': size.ram,
            'DnsName': ex_dns_name or name,
            'Comment': ex_comment or '',
            }

        logger.debug("Creating virtual machine %s from %s", name, image.id)
        result = self.connection.request(self._path('/VirtualMachine/SetVM'),
                                         data=json.dumps(payload),
                                         method='POST').object
        vm_id = result['VirtualMachineID']
        logger.debug("Created virtual machine %s", vm_id)

        self._action(vm_id, 'PowerOn')

        result = self.connection.request(
            self._path('/VirtualMachine/%s' % vm_id),
            params={'$filter': VIRTUAL_MACHINE_FILTER}).object
        vm = _values(result)[0]

        if (vm.get('State') or {}).get('ExitCode'):
            self._action(vm_id, 'Remove')
            raise LibcloudError('VM %s has not started correctly' % vm_id, driver=self)

        node = self._to_node(vm)
        node.extra['login_user'] = ex_login_user
        node.extra['password'] = ex_login_password
        return node

    def _to_node(self, vm, images=None):
        name = vm['Name']
        if name.startswith('/'):
            name = name[1:]

        size = NodeSize(
            id='',
            name='',
            ram=vm.get('RamAllocatedMB'),
            disk=vm.get('StorageCapacityAllocatedMB'),
            bandwidth=0,
            price=0,
            driver=self,
            extra={
                'cpu_shares': vm.get('CpuShares'),
                'cpu_limit_mhz': vm.get('CpuLimitMHz'),
                'num_cpu': vm.get('NumCpu'),
                },
            )

        image_id = vm.get('SourceTemplateID')
        image = (images or {}).get(image_id)

        private_ips = [vm['IPAddress']] if vm.get('IPAddress') else []

        extra = {
            'hostname': vm.get('DnsName'),
            'image_id': image_id,
            'os': vm.get('OS'),
            'os_full_name': vm.get('OSFullName'),
            'power_state': vm.get('PowerState'),
            'tenant_id': vm.get('TenantID'),
            'is_template': vm.get('IsTemplate', False),
            'operating_system': image.extra['operating_system'] if image else None,
            }

        return Node(id=vm['VirtualMachineID'], name=name,
                    state=NODE_STATE_MAP.get(vm.get('PowerState'), NodeState.UNKNOWN),
                    public_ips=[self.connection.host], private_ips=private_ips,
                    driver=self, size=size, image=image,
                    created_at=parse_date(vm.get('Timestamp')), extra=extra)

    def _to_image(self, vm):
        name = vm['Name']
        family = os_family(vm.get('OS'))
        if family == OsFamily.UNRECOGNIZED:
            family = os_family(vm.get('OSFullName'))
        os = OperatingSystem(
            family=family,
            version=os_version(vm.get('OSFullName')),
            description=name,
            is_64bit=True,
            )
        return NodeImage(
            id=vm['VirtualMachineID'],
            name=name.split(':')[0],
            driver=self,
            extra={
                'description': vm.get('OSFullName'),
                'status': ImageStatus.AVAILABLE,
                'operating_system': os,
                },
            )
