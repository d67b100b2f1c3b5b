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
vCloud Director 1.5 driver.

Nodes are the vms inside vApps, images are vApp templates and locations are
the vdcs of the organisation the session belongs to. Entities are addressed
by their ``href``, so node and image ids are hrefs too.
"""

import base64
import random
import logging
from xml.etree import ElementTree

from libcloud.utils.py3 import b
from libcloud.utils.py3 import urlparse
from libcloud.common.types import LibcloudError
from libcloud.common.base import ConnectionUserAndKey
from libcloud.compute.types import NodeState
from libcloud.compute.base import Node, NodeDriver, NodeImage, NodeLocation

from stratus.compute import ovf
from stratus.compute.base import XmlApiResponse, OperatingSystem, OsFamily
from stratus.compute.base import ImageStatus, LocationScope
from stratus.compute.base import OperationFailed, UnsupportedOperation
from stratus.compute.base import placeholder_sizes, split_ips, wait_for
from stratus.compute.providers import Provider
from stratus.compute.vcloud import domain, parsers
from stratus.templates import render_template

logger = logging.getLogger("stratus.compute.vcloud")

ACCEPT = 'application/*+xml;version=1.5'
AUTH_HEADER = 'x-vcloud-authorization'

TASK_TIMEOUT = 300
QUERY_PAGE_SIZE = 128

CENTOS = 'centos'
UBUNTU = 'ubuntu'
SUSE = 'sles'
WINDOWS = 'windows'
UNRECOGNIZED = 'unrecognized'

OS_FAMILIES = (
    (CENTOS, OsFamily.CENTOS),
    (UBUNTU, OsFamily.UBUNTU),
    (WINDOWS, OsFamily.WINDOWS),
    (SUSE, OsFamily.SUSE),
)

NODE_STATE_MAP = {
    domain.Status.FAILED_CREATION: NodeState.ERROR,
    domain.Status.UNRESOLVED: NodeState.PENDING,
    domain.Status.RESOLVED: NodeState.PENDING,
    domain.Status.DEPLOYED: NodeState.PENDING,
    domain.Status.SUSPENDED: NodeState.SUSPENDED,
    domain.Status.POWERED_ON: NodeState.RUNNING,
    domain.Status.WAITING_FOR_INPUT: NodeState.PENDING,
    domain.Status.UNKNOWN: NodeState.UNKNOWN,
    domain.Status.UNRECOGNIZED: NodeState.UNKNOWN,
    domain.Status.POWERED_OFF: NodeState.STOPPED,
    domain.Status.INCONSISTENT_STATE: NodeState.ERROR,
    domain.Status.MIXED: NodeState.UNKNOWN,
}

# the query service spells statuses out
RECORD_STATE_MAP = {
    'FAILED_CREATION': NodeState.ERROR,
    'UNRESOLVED': NodeState.PENDING,
    'RESOLVED': NodeState.PENDING,
    'DEPLOYED': NodeState.PENDING,
    'SUSPENDED': NodeState.SUSPENDED,
    'POWERED_ON': NodeState.RUNNING,
    'WAITING_FOR_INPUT': NodeState.PENDING,
    'POWERED_OFF': NodeState.STOPPED,
}

IMAGE_STATUS_MAP = {
    domain.Status.FAILED_CREATION: ImageStatus.ERROR,
    domain.Status.UNRESOLVED: ImageStatus.PENDING,
    domain.Status.RESOLVED: ImageStatus.AVAILABLE,
    domain.Status.POWERED_OFF: ImageStatus.AVAILABLE,
}


def parse_version(family, os_type, description):
    if os_type and '_' in os_type:
        return os_type.split('_')[0][len(family):].strip()
    if description:
        stripped = description.split(' (')[0]
        position = stripped.lower().find(family)
        if position != -1:
            return stripped[position + len(family):].strip()
    return None


def operating_system_for(section):
    """ Work out the OS of a template from its ``OperatingSystemSection`` """
    if section is None:
        return OperatingSystem(description=UNRECOGNIZED)
    os_type = section.os_type or ''
    for prefix, family in OS_FAMILIES:
        if os_type.startswith(prefix):
            return OperatingSystem(
                family=family,
                version=parse_version(prefix, os_type, section.description),
                description=section.description,
                is_64bit='64' in os_type,
                )
    return OperatingSystem(description=section.description, is_64bit='64' in os_type)


class VCloudResponse(XmlApiResponse):

    def parse_error(self):
        body = super(VCloudResponse, self).parse_error()
        try:
            element = ElementTree.fromstring(body)
        except (ElementTree.ParseError, TypeError):
            return body
        return element.get('message', body)


class VCloudConnection(ConnectionUserAndKey):

    """ ``user_id`` is ``user@org``. Until a session exists requests carry
    basic auth, afterwards the session token. """

    responseCls = VCloudResponse
    token = None

    def add_default_headers(self, headers):
        headers['Accept'] = ACCEPT
        if self.token:
            headers[AUTH_HEADER] = self.token
        else:
            user_b64 = base64.b64encode(b('%s:%s' % (self.user_id, self.key)))
            headers['Authorization'] = 'Basic %s' % (user_b64.decode('utf-8'))
        return headers


class VCloudNodeDriver(NodeDriver):

    type = Provider.VCLOUD
    name = 'vCloud Director'
    website = 'http://www.vmware.com/products/vcloud-director'
    connectionCls = VCloudConnection
    features = {'create_node': ['generates_password']}

    def __init__(self, key, secret, host, port=None, secure=True,
                 ex_task_timeout=TASK_TIMEOUT, ex_task_interval=5, **kwargs):
        self.task_timeout = ex_task_timeout
        self.task_interval = ex_task_interval
        self._session = None
        super(VCloudNodeDriver, self).__init__(key=key, secret=secret,
                                               secure=secure, host=host,
                                               port=port, **kwargs)

    def _path(self, href):
        if '://' not in href:
            return href
        parts = urlparse.urlparse(href)
        if parts.query:
            return '%s?%s' % (parts.path, parts.query)
        return parts.path

    def _get(self, href, **kwargs):
        self.ex_get_session()
        return self.connection.request(self._path(href), **kwargs).object

    def _post(self, href, data=None, content_type=None, method='POST'):
        self.ex_get_session()
        headers = {'Content-Type': content_type} if content_type else {}
        return self.connection.request(self._path(href), data=data,
                                       headers=headers, method=method).object

    # Session and organisation

    def ex_login(self):
        response = self.connection.request('/api/sessions', method='POST')
        self.connection.token = response.headers.get(AUTH_HEADER)
        self._session = parsers.parse_session(response.object)
        logger.debug("logged in to %s as %s", self._session.org, self._session.user)
        return self._session

    def ex_get_session(self):
        if self._session is None:
            return self.ex_login()
        return self._session

    def ex_list_orgs(self):
        return parsers.parse_org_list(self._get('/api/org'))

    def ex_get_org(self):
        """ The organisation the session belongs to """
        session = self.ex_get_session()
        for reference in self.ex_list_orgs():
            if reference.name == session.org:
                return parsers.parse_org(self._get(reference.href))
        raise LibcloudError("Can't find the org %s" % session.org, driver=self)

    def ex_list_vdcs(self, org=None):
        org = org or self.ex_get_org()
        return [parsers.parse_vdc(self._get(link.href))
                for link in org.links if link.type == domain.MediaType.VDC]

    def ex_get_vdc(self, org=None):
        org = org or self.ex_get_org()
        link = domain.find_link(org.links, type=domain.MediaType.VDC)
        if link is None:
            raise LibcloudError("The org %s has no vdc" % org.name, driver=self)
        return parsers.parse_vdc(self._get(link.href))

    def ex_list_networks(self, org=None):
        org = org or self.ex_get_org()
        return [parsers.parse_network(self._get(link.href))
                for link in org.links if link.type == domain.MediaType.ORG_NETWORK]

    def ex_find_network(self, org, name=None, fence_mode=domain.FenceMode.NAT_ROUTED):
        """ The named network of the org, or the first one with the given
        fence mode. Networks that are busy with tasks are skipped. """
        for network in self.ex_list_networks(org):
            if network.tasks:
                continue
            if name is not None:
                if network.name == name:
                    return network
            elif network.fence_mode == fence_mode:
                return network
        if name is not None:
            raise LibcloudError("Can't find a network named %s in org %s" % (name, org.name), driver=self)
        raise LibcloudError("Can't find a network with fence mode %s in org %s" % (fence_mode, org.name),
                            driver=self)

    # Tasks

    def ex_get_task(self, href):
        return parsers.parse_task(self._get(href))

    def ex_wait_for_task(self, task, timeout=None):
        timeout = timeout or self.task_timeout

        def finished():
            current = self.ex_get_task(task.href)
            if current.status in domain.TaskStatus.FAILED:
                raise OperationFailed('Task %s (%s) finished with status %s: %s' % (
                    current.href, current.operation, current.status, current.error_message),
                    driver=self)
            return current.status == domain.TaskStatus.SUCCESS

        wait_for(finished, timeout, self.task_interval, what='Task %s' % task.href)
        return True

    def _wait_for_tasks(self, vapp, activity):
        for task in vapp.tasks:
            logger.debug("awaiting vApp(%s) %s", vapp.id, activity)
            self.ex_wait_for_task(task)
            logger.debug("vApp(%s) %s completed", vapp.id, activity)

    # Entities

    def ex_get_vapp_template(self, href):
        return parsers.parse_vapp_template(self._get(href))

    def ex_get_envelope(self, template_href):
        return ovf.parse_envelope(self._get(template_href.rstrip('/') + '/ovf'))

    def ex_get_vapp(self, href):
        return parsers.parse_vapp(self._get(href))

    def ex_get_vm(self, href):
        return parsers.parse_vm(self._get(href))

    def ex_get_guest_customization_section(self, vm_href):
        return parsers.parse_guest_customization_section(
            self._get(vm_href.rstrip('/') + '/guestCustomizationSection'))

    def ex_query(self, record_type, filter=None, **params):
        """ Every record the query matches. Results come back a page at a
        time, each page links to the next. """
        params.update({'type': record_type, 'format': 'records'})
        params.setdefault('pageSize', QUERY_PAGE_SIZE)
        if filter:
            params['filter'] = filter
        element = self._get('/api/query', params=params)
        records = parsers.parse_query_result_records(element)
        next_page = domain.find_link(ovf.parse_links(element), rel='nextPage')
        while next_page is not None:
            element = self._get(next_page.href)
            records.extend(parsers.parse_query_result_records(element))
            next_page = domain.find_link(ovf.parse_links(element), rel='nextPage')
        return records

    def ex_query_vapp_templates(self, filter=None):
        return self.ex_query('vAppTemplate', filter)

    def ex_query_vapps(self, filter=None):
        return self.ex_query('vApp', filter)

    def ex_query_vms(self, filter=None):
        return self.ex_query('vm', filter)

    # Images, sizes and locations

    def list_images(self, location=None):
        vdc = self.ex_get_vdc()
        images = []
        for reference in vdc.resource_entities:
            if reference.type != domain.MediaType.VAPP_TEMPLATE:
                continue
            template = self.ex_get_vapp_template(reference.href)
            images.append(self._to_image(template, self.ex_get_envelope(template.href), vdc))
        return images

    def list_sizes(self, location=None):
        return placeholder_sizes(self)

    def list_locations(self):
        org = self.ex_get_org()
        return [self._to_location(vdc, org) for vdc in self.ex_list_vdcs(org)]

    # Nodes

    def list_nodes(self):
        records = self.ex_query_vms(filter='isVAppTemplate==false')
        return [self._record_to_node(r) for r in records]

    def ex_get_node(self, href):
        return self._to_node(self.ex_get_vm(href))

    def create_node(self, name, size, image, ex_network=None):
        org = self.ex_get_org()
        network = self.ex_find_network(org, name=ex_network)
        vdc = self.ex_get_vdc(org)

        parent_network = None
        for reference in vdc.available_networks:
            if reference.href == network.href:
                parent_network = reference
        if parent_network is None:
            raise LibcloudError("The network %s is not available in vdc %s" % (network.name, vdc.name),
                                driver=self)

        template = self.ex_get_vapp_template(image.id)
        if not template.children:
            raise LibcloudError("The template %s has no vms" % template.name, driver=self)
        template_vm = template.children[0]
        customization = self.ex_get_guest_customization_section(template_vm.href)

        data = render_template(
            'vcloud/compose_vapp.xml',
            name=name,
            network_name=network.name,
            parent_network_href=parent_network.href,
            vm_href=template_vm.href,
            item_name='vm-%d' % random.randint(0, 2 ** 31 - 1),
            computer_name=customization.computer_name,
            )
        element = self._post(vdc.href.rstrip('/') + '/action/composeVApp', data=data,
                             content_type=domain.MediaType.COMPOSE_VAPP_PARAMS)
        vapp = parsers.parse_vapp(element)
        self._wait_for_tasks(vapp, 'deployment')

        vapp = self.ex_get_vapp(vapp.href)
        if len(vapp.children) != 1:
            raise LibcloudError("Expected a single vm in vApp %s, found %d" % (vapp.name, len(vapp.children)),
                                driver=self)
        vm = vapp.children[0]
        password = self.ex_get_guest_customization_section(vm.href).admin_password

        node = self._to_node(vm)
        node.extra['username'] = 'root'
        node.extra['password'] = password
        return node

    def destroy_node(self, node):
        vm = self.ex_get_vm(node.id)
        up = domain.find_link(vm.links, rel='up')
        if up is None:
            raise LibcloudError("Can't find the vApp of %s" % vm.name, driver=self)

        if vm.status == domain.Status.POWERED_ON:
            vapp = self.ex_get_vapp(up.href)
            self._wait_for_tasks(vapp, 'tasks completion')

            data = render_template('vcloud/undeploy_vapp.xml', power_action='powerOff')
            task = parsers.parse_task(self._post(
                up.href.rstrip('/') + '/action/undeploy', data=data,
                content_type=domain.MediaType.UNDEPLOY_VAPP_PARAMS))
            logger.debug("awaiting vApp(%s) undeploy completion", vapp.id)
            self.ex_wait_for_task(task)

        task = parsers.parse_task(self._post(up.href, method='DELETE'))
        logger.debug("awaiting vApp(%s) remove completion", up.href)
        self.ex_wait_for_task(task)
        logger.info("removed vApp %s", up.href)
        return True

    def _power_action(self, node, action):
        task = parsers.parse_task(self._post(node.id.rstrip('/') + '/power/action/' + action))
        self.ex_wait_for_task(task)
        return True

    def reboot_node(self, node):
        return self._power_action(node, 'reboot')

    def ex_suspend_node(self, node):
        return self._power_action(node, 'suspend')

    def ex_resume_node(self, node):
        raise UnsupportedOperation('resume not supported', driver=self)

    def ex_power_on(self, node):
        return self._power_action(node, 'powerOn')

    def ex_power_off(self, node):
        return self._power_action(node, 'powerOff')

    def ex_shutdown(self, node):
        return self._power_action(node, 'shutdown')

    def ex_reset(self, node):
        return self._power_action(node, 'reset')

    # Converters

    def _to_image(self, template, envelope, vdc=None):
        virtual_system = envelope.virtual_system if envelope is not None else None
        if virtual_system is not None:
            os = operating_system_for(virtual_system.operating_system_section)
        else:
            os = OperatingSystem(description=UNRECOGNIZED)
        return NodeImage(
            id=template.href,
            name=template.name,
            driver=self,
            extra={
                'description': template.description or template.name,
                'status': IMAGE_STATUS_MAP.get(template.status, ImageStatus.UNRECOGNIZED),
                'location': vdc.href if vdc is not None else None,
                'operating_system': os,
                },
            )

    def _to_location(self, vdc, org):
        return NodeLocation(
            id=vdc.href,
            name=vdc.name,
            country=None,
            driver=self,
            extra={
                'scope': LocationScope.ZONE,
                'parent': org.name,
                },
            )

    def _to_node(self, vm):
        addresses = []
        for connection in vm.network_connections:
            addresses.extend([connection.ip_address, connection.external_ip_address])
        public_ips, private_ips = split_ips(addresses)

        up = domain.find_link(vm.links, rel='up')
        extra = {
            'vapp': up.href if up is not None else None,
            'status': vm.status,
        }
        if vm.virtual_hardware_section is not None:
            extra['cpus'] = vm.virtual_hardware_section.cpu_count
            extra['memory'] = vm.virtual_hardware_section.ram_mb
        if vm.operating_system_section is not None:
            extra['os_type'] = vm.operating_system_section.os_type

        return Node(
            id=vm.href,
            name=vm.name,
            state=NODE_STATE_MAP.get(vm.status, NodeState.UNKNOWN),
            public_ips=public_ips,
            private_ips=private_ips,
            driver=self,
            extra=extra,
            )

    def _record_to_node(self, record):
        attributes = record.attributes
        public_ips, private_ips = split_ips([attributes.get('ipAddress')])
        extra = {
            'vapp': attributes.get('container'),
            'status': attributes.get('status'),
            'os_type': attributes.get('guestOs'),
        }
        if attributes.get('numberOfCpus'):
            extra['cpus'] = int(attributes['numberOfCpus'])
        if attributes.get('memoryMB'):
            extra['memory'] = int(attributes['memoryMB'])
        return Node(
            id=attributes.get('href'),
            name=attributes.get('name'),
            state=RECORD_STATE_MAP.get(attributes.get('status'), NodeState.UNKNOWN),
            public_ips=public_ips,
            private_ips=private_ips,
            driver=self,
            extra=extra,
            )
