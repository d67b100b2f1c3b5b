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
ProfitBricks (http://www.profitbricks.com) driver for the 1.3 SOAP API.

Servers live in data centers, which double as the locations of this driver.
"""

import base64
import logging
from xml.etree import ElementTree

from libcloud.utils.py3 import b
from libcloud.common.types import LibcloudError
from libcloud.common.base import ConnectionUserAndKey
from libcloud.compute.types import NodeState
from libcloud.compute.base import Node, NodeDriver, NodeImage, NodeLocation

from stratus.compute.base import XmlApiResponse, OperatingSystem, OsFamily
from stratus.compute.base import ImageStatus, LocationScope
from stratus.compute.base import os_family_from_string, placeholder_sizes, split_ips
from stratus.compute.providers import Provider
from stratus.compute.profitbricks import domain, parsers
from stratus.templates import render_template

logger = logging.getLogger("stratus.compute.profitbricks")

API_HOST = 'api.profitbricks.com'
API_PATH = '/1.3'

NODE_STATE_MAP = {
    domain.VirtualMachineState.RUNNING: NodeState.RUNNING,
    domain.VirtualMachineState.SHUTOFF: NodeState.STOPPED,
    domain.VirtualMachineState.SHUTDOWN: NodeState.STOPPED,
    domain.VirtualMachineState.PAUSED: NodeState.SUSPENDED,
    domain.VirtualMachineState.BLOCKED: NodeState.SUSPENDED,
    domain.VirtualMachineState.CRASHED: NodeState.ERROR,
    domain.VirtualMachineState.NOSTATE: NodeState.UNKNOWN,
}


class ProfitBricksResponse(XmlApiResponse):

    def parse_error(self):
        body = super(ProfitBricksResponse, self).parse_error()
        try:
            message = parsers.fault_string(ElementTree.fromstring(body))
        except (ElementTree.ParseError, TypeError):
            message = None
        raise LibcloudError(message or body, driver=self.connection.driver)


class ProfitBricksConnection(ConnectionUserAndKey):

    responseCls = ProfitBricksResponse
    host = API_HOST

    def add_default_headers(self, headers):
        user_b64 = base64.b64encode(b('%s:%s' % (self.user_id, self.key)))
        headers['Authorization'] = 'Basic %s' % (user_b64.decode('utf-8'))
        headers['Content-Type'] = 'text/xml; charset=utf-8'
        return headers


class ProfitBricksNodeDriver(NodeDriver):

    type = Provider.PROFITBRICKS
    name = 'ProfitBricks'
    website = 'http://www.profitbricks.com'
    connectionCls = ProfitBricksConnection

    def __init__(self, key, secret, secure=True, host=None, port=None, **kwargs):
        super(ProfitBricksNodeDriver, self).__init__(key=key, secret=secret,
                                                     secure=secure, host=host,
                                                     port=port, **kwargs)

    def _call(self, template, **arguments):
        """ Send one SOAP request, returning the ``<return>`` elements """
        data = render_template('profitbricks/%s.xml' % template, **arguments)
        envelope = self.connection.request(API_PATH, data=data, method='POST').object
        return parsers.returns(envelope)

    def _call_one(self, template, **arguments):
        results = self._call(template, **arguments)
        if not results:
            raise LibcloudError('Empty response to %s' % arguments.get('operation', template), driver=self)
        return results[0]

    # Data centers

    def ex_list_datacenters(self):
        return [parsers.parse_datacenter_reference(r)
                for r in self._call('envelope', operation='getAllDataCenters')]

    def ex_describe_datacenter(self, datacenter_id):
        return parsers.parse_datacenter_info(self._call_one(
            'datacenter_id', operation='getDataCenter', datacenter_id=datacenter_id))

    def ex_datacenter_state(self, datacenter_id):
        result = self._call_one('datacenter_id', operation='getDataCenterState',
                                datacenter_id=datacenter_id)
        return domain.ProvisioningState.from_value((result.text or '').strip())

    def ex_create_datacenter(self, name, location):
        if location not in domain.Location.ALL:
            raise LibcloudError('Unknown location %s, expected one of %s' % (
                location, ', '.join(domain.Location.ALL)), driver=self)
        result = self._call_one('create_datacenter', name=name, location=location)
        datacenter = parsers.parse_datacenter_reference(result)
        logger.info("created data center %s (%s) in %s", name, datacenter.id, location)
        return datacenter._replace(name=name, location=datacenter.location or location)

    def ex_rename_datacenter(self, datacenter_id, name):
        result = self._call_one('update_datacenter', datacenter_id=datacenter_id, name=name)
        return parsers.parse_datacenter_reference(result)._replace(name=name)

    def ex_clear_datacenter(self, datacenter_id):
        result = self._call_one('datacenter_id', operation='clearDataCenter',
                                datacenter_id=datacenter_id)
        return parsers.parse_datacenter_reference(result)

    def ex_destroy_datacenter(self, datacenter_id):
        self._call('datacenter_id', operation='deleteDataCenter', datacenter_id=datacenter_id)
        return True

    # Images, sizes and locations

    def list_images(self, location=None):
        images = [parsers.parse_image(r) for r in self._call('envelope', operation='getAllImages')]
        return [self._to_image(i) for i in images
                if i.type == domain.ImageType.HDD and
                (location is None or i.location == location.extra.get('region'))]

    def list_sizes(self, location=None):
        return placeholder_sizes(self)

    def list_locations(self):
        return [self._to_location(self.ex_describe_datacenter(d.id))
                for d in self.ex_list_datacenters()]

    # Servers

    def ex_list_servers(self):
        return [parsers.parse_server(r) for r in self._call('envelope', operation='getAllServers')]

    def ex_get_server(self, server_id):
        return parsers.parse_server(self._call_one('server_id', operation='getServer', server_id=server_id))

    def list_nodes(self):
        return [self._to_node(s) for s in self.ex_list_servers()]

    def ex_get_node(self, server_id):
        return self._to_node(self.ex_get_server(server_id))

    def _server_action(self, node, operation):
        self._call('server_id', operation=operation, server_id=node.id)
        return True

    def reboot_node(self, node):
        return self._server_action(node, 'resetServer')

    def destroy_node(self, node):
        return self._server_action(node, 'deleteServer')

    def ex_start_node(self, node):
        return self._server_action(node, 'startServer')

    def ex_stop_node(self, node):
        return self._server_action(node, 'stopServer')

    def create_node(self, name, size, image=None, ex_datacenter=None,
                    ex_internet_access=True, ex_availability_zone='AUTO'):
        datacenter_id = ex_datacenter
        if datacenter_id is None:
            datacenters = self.ex_list_datacenters()
            if not datacenters:
                raise LibcloudError('There are no data centers to create %s in' % name, driver=self)
            datacenter_id = datacenters[0].id

        result = self._call_one(
            'create_server',
            datacenter_id=datacenter_id,
            name=name,
            cores=(size.extra or {}).get('cores', 1),
            ram=size.ram,
            image_id=image.id if image is not None else None,
            internet_access=ex_internet_access,
            availability_zone=ex_availability_zone,
            )
        server_id = result.findtext('serverId')
        logger.info("created server %s (%s) in data center %s", name, server_id, datacenter_id)
        return self.ex_get_node(server_id)

    # Converters

    def _to_node(self, server):
        if server.provisioning_state == domain.ProvisioningState.INPROCESS:
            state = NodeState.PENDING
        else:
            state = NODE_STATE_MAP.get(server.virtual_machine_state, NodeState.UNKNOWN)
        public_ips, private_ips = split_ips(server.ips)
        return Node(
            id=server.id,
            name=server.name,
            state=state,
            public_ips=public_ips,
            private_ips=private_ips,
            driver=self,
            created_at=server.creation_time,
            extra={
                'datacenter_id': server.data_center_id,
                'cores': server.cores,
                'ram': server.ram,
                'internet_access': server.internet_access,
                'os_type': server.os_type,
                'availability_zone': server.availability_zone,
                'provisioning_state': server.provisioning_state,
                },
            )

    def _to_image(self, image):
        family = os_family_from_string(image.name)
        if family == OsFamily.UNRECOGNIZED and image.os_type == 'WINDOWS':
            family = OsFamily.WINDOWS
        return NodeImage(
            id=image.id,
            name=image.name,
            driver=self,
            extra={
                'size': image.size,
                'location': image.location,
                'public': image.public,
                'writeable': image.writeable,
                'bootable': image.bootable,
                'status': ImageStatus.AVAILABLE,
                'operating_system': OperatingSystem(
                    family=family,
                    description=image.name,
                    is_64bit='64' in (image.name or ''),
                    ),
                },
            )

    def _to_location(self, datacenter):
        return NodeLocation(
            id=datacenter.id,
            name=datacenter.name,
            country=datacenter.location.split('/')[0].upper() if '/' in datacenter.location else None,
            driver=self,
            extra={
                'scope': LocationScope.REGION,
                'region': datacenter.location,
                'version': datacenter.version,
                'state': datacenter.state,
                },
            )
