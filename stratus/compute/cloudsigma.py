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
CloudSigma API 2.0 (http://www.cloudsigma.com) driver.
"""

import json
import base64
import logging

from libcloud.utils.py3 import httplib
from libcloud.utils.py3 import b

from libcloud.common.types import LibcloudError
from libcloud.common.base import ConnectionUserAndKey
from libcloud.compute.types import NodeState
from libcloud.compute.base import Node, NodeDriver, NodeImage

from stratus.compute.base import JsonApiResponse, OperatingSystem, OsFamily
from stratus.compute.base import os_family_from_string, placeholder_sizes
from stratus.compute.base import split_ips, wait_for
from stratus.compute.providers import Provider

logger = logging.getLogger("stratus.compute.cloudsigma")

API_PREFIX = '/api/2.0'
DEFAULT_REGION = 'zrh'

NODE_STATE_MAP = {
    'running': NodeState.RUNNING,
    'stopped': NodeState.STOPPED,
    'starting': NodeState.PENDING,
    'stopping': NodeState.PENDING,
    'paused': NodeState.SUSPENDED,
    'unavailable': NodeState.UNKNOWN,
}


class DrivesListRequestFieldsGroup(object):

    """ The drive fields to ask ``/drives/detail/`` for. """

    def __init__(self, fields):
        self.fields = tuple(fields)

    def __str__(self):
        return ",".join(self.fields)


class ServerAvailabilityGroup(object):

    """ Servers that the cloud keeps on separate physical hosts. """

    def __init__(self, uuids):
        self.uuids = list(uuids)

    def __eq__(self, other):
        if not isinstance(other, ServerAvailabilityGroup):
            return NotImplemented
        return self.uuids == other.uuids

    def __ne__(self, other):
        result = self.__eq__(other)
        if result is NotImplemented:
            return result
        return not result

    def __hash__(self):
        return hash(tuple(self.uuids))

    def __str__(self):
        return ",".join(self.uuids)

    def __repr__(self):
        return "<ServerAvailabilityGroup %s>" % self


class CloudSigmaResponse(JsonApiResponse):

    def parse_error(self):
        body = super(CloudSigmaResponse, self).parse_error()
        try:
            errors = json.loads(body)
            return "; ".join(e.get('error_message', '') for e in errors)
        except (ValueError, TypeError, AttributeError):
            return body


class CloudSigmaConnection(ConnectionUserAndKey):

    responseCls = CloudSigmaResponse

    def add_default_headers(self, headers):
        user_b64 = base64.b64encode(b('%s:%s' % (self.user_id, self.key)))
        headers['Authorization'] = 'Basic %s' % (user_b64.decode('utf-8'))
        headers['Accept'] = 'application/json'
        headers['Content-Type'] = 'application/json'
        return headers


class CloudSigmaNodeDriver(NodeDriver):

    type = Provider.CLOUDSIGMA
    name = 'CloudSigma'
    website = 'http://www.cloudsigma.com'
    connectionCls = CloudSigmaConnection
    features = {'create_node': ['password']}

    def __init__(self, key, secret, region=DEFAULT_REGION, **kwargs):
        kwargs.setdefault('host', '%s.cloudsigma.com' % region)
        super(CloudSigmaNodeDriver, self).__init__(key=key, secret=secret,
                                                   region=region, **kwargs)
        self.region = region

    def _request(self, path, **kwargs):
        return self.connection.request(API_PREFIX + path, **kwargs)

    def list_nodes(self):
        result = self._request('/servers/detail/').object
        return [self._to_node(server) for server in result['objects']]

    def ex_get_node(self, node_id):
        return self._to_node(self._request('/servers/%s/' % node_id).object)

    def list_images(self):
        result = self._request('/libdrives/').object
        return [self._to_image(drive) for drive in result['objects']]

    def list_sizes(self):
        return placeholder_sizes(self)

    def list_locations(self):
        return []

    def ex_list_drives(self, fields_group=None):
        params = {}
        if fields_group is not None:
            params['fields'] = str(fields_group)
        return self._request('/drives/detail/', params=params).object['objects']

    def ex_list_servers_availability_groups(self):
        result = self._request('/servers/availability_groups/').object
        return [ServerAvailabilityGroup(uuids) for uuids in result]

    def ex_get_servers_availability_group(self, node):
        result = self._request('/servers/availability_groups/%s/' % node.id).object
        return ServerAvailabilityGroup(result)

    def ex_list_drives_availability_groups(self):
        result = self._request('/drives/availability_groups/').object
        return [ServerAvailabilityGroup(uuids) for uuids in result]

    def _action(self, node_id, action, params=None):
        params = dict(params or {}, do=action)
        result = self._request('/servers/%s/action/' % node_id,
                               params=params, method='POST')
        return result.status in (httplib.OK, httplib.ACCEPTED)

    def _wait_for_status(self, node_id, status, timeout=300):
        wait_for(lambda: self._request('/servers/%s/' % node_id).object['status'] == status,
                 timeout=timeout, interval=5,
                 what='Server %s becoming %s' % (node_id, status))

    def ex_start_node(self, node, ex_avoid=None):
        params = {}
        if ex_avoid is not None:
            params['avoid'] = str(ex_avoid)
        return self._action(node.id, 'start', params)

    def ex_stop_node(self, node):
        return self._action(node.id, 'stop')

    def reboot_node(self, node):
        self.ex_stop_node(node)
        self._wait_for_status(node.id, 'stopped')
        return self.ex_start_node(node)

    def destroy_node(self, node):
        if node.state in (NodeState.RUNNING, NodeState.PENDING):
            self.ex_stop_node(node)
            self._wait_for_status(node.id, 'stopped')
        result = self._request('/servers/%s/' % node.id,
                               params={'recurse': 'all_drives'},
                               method='DELETE')
        return result.status == httplib.NO_CONTENT

    def _clone_library_drive(self, image, name, timeout=600):
        data = json.dumps({'name': name})
        result = self._request('/libdrives/%s/action/' % image.id,
                               params={'do': 'clone'}, data=data,
                               method='POST').object
        drive_uuid = result['objects'][0]['uuid']
        logger.debug("Cloning %s into drive %s", image.id, drive_uuid)
        wait_for(lambda: self._request('/drives/%s/' % drive_uuid).object['status'] == 'unmounted',
                 timeout=timeout, interval=5, what='Cloning drive %s' % drive_uuid)
        return drive_uuid

    def create_node(self, name, size, image, ex_vnc_password=None,
                    ex_avoid=None):
        """
        Clone the library drive the image stands for, boot a server from it
        with a single DHCP NIC and start it.

        ``ex_avoid`` is a ``ServerAvailabilityGroup`` of servers the new one
        must not share a host with.
        """
        if not ex_vnc_password:
            raise LibcloudError('A vnc password is required', driver=self)

        drive_uuid = self._clone_library_drive(image, '%s-drive' % name)

        cores = size.extra.get('cores', 1)
        server = {
            'name': name,
            'cpu': size.extra.get('cpu', 1000 * cores),
            'mem': size.ram * 1024 * 1024,
            'vnc_password': ex_vnc_password,
            'drives': [{
                'boot_order': 1,
                'dev_channel': '0:0',
                'device': 'virtio',
                'drive': drive_uuid,
                }],
            'nics': [{
                'ip_v4_conf': {'conf': 'dhcp'},
                'model': 'virtio',
                }],
            }
        result = self._request('/servers/', data=json.dumps({'objects': [server]}),
                               method='POST').object
        node = self._to_node(result['objects'][0])
        self.ex_start_node(node, ex_avoid=ex_avoid)
        node.extra['password'] = ex_vnc_password
        return node

    def _to_node(self, server):
        addresses = []
        for nic in server.get('nics') or []:
            runtime = nic.get('runtime') or {}
            ip_v4 = runtime.get('ip_v4') or {}
            if ip_v4.get('uuid'):
                addresses.append(ip_v4['uuid'])
        public_ips, private_ips = split_ips(addresses)

        extra = {
            'cpu': server.get('cpu'),
            'mem': server.get('mem'),
            'drives': [d['drive']['uuid'] if isinstance(d['drive'], dict) else d['drive']
                       for d in server.get('drives') or []],
            'meta': server.get('meta', {}),
            'status': server.get('status'),
            }
        return Node(id=server['uuid'], name=server['name'],
                    state=NODE_STATE_MAP.get(server.get('status'), NodeState.UNKNOWN),
                    public_ips=public_ips, private_ips=private_ips,
                    driver=self, extra=extra)

    def _to_image(self, drive):
        family = os_family_from_string(drive.get('distribution'))
        if family == OsFamily.UNRECOGNIZED:
            family = os_family_from_string(drive.get('os'))
        os = OperatingSystem(
            family=family,
            version=drive.get('version'),
            description=drive.get('description') or drive.get('name'),
            arch=drive.get('arch'),
            is_64bit=drive.get('arch') == '64',
            )
        return NodeImage(
            id=drive['uuid'],
            name=drive['name'],
            driver=self,
            extra={
                'size': drive.get('size'),
                'image_type': drive.get('image_type'),
                'operating_system': os,
                },
            )
