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
Azure service management (https://management.core.windows.net) driver.

Every node is a deployment with a single role, living in a cloud service of
the same name. Writes are asynchronous: the API accepts them, hands back an
``x-ms-request-id`` and the driver polls ``/operations/<id>`` until Azure
reports the outcome.
"""

import os
import base64
import random
import string
import logging

from libcloud.utils.py3 import httplib
from libcloud.common.types import LibcloudError
from libcloud.common.exceptions import BaseHTTPError
from libcloud.common.base import CertificateConnection
from libcloud.compute.types import NodeState
from libcloud.compute.base import Node, NodeDriver, NodeImage, NodeSize, NodeLocation

from stratus.compute.base import XmlApiResponse, OperatingSystem, OsFamily
from stratus.compute.base import ImageStatus, LocationScope
from stratus.compute.base import OperationFailed, OperationTimeout
from stratus.compute.base import os_family_from_string, version_from_string, wait_for
from stratus.compute.providers import Provider
from stratus.compute.azure import domain, parsers
from stratus.templates import render_template

logger = logging.getLogger("stratus.compute.azure")

API_HOST = 'management.core.windows.net'
API_VERSION = '2014-10-01'

DEFAULT_VIRTUAL_NETWORK_NAME = 'stratus-virtual-network'
DEFAULT_ADDRESS_SPACE_ADDRESS_PREFIX = '10.0.0.0/20'
DEFAULT_SUBNET_NAME = 'stratus-1'
DEFAULT_SUBNET_ADDRESS_PREFIX = '10.0.0.0/23'
DEFAULT_STORAGE_SERVICE_TYPE = 'Standard_GRS'
DEFAULT_LOGIN_USER = 'stratus'
DEFAULT_LOGIN_PASSWORD = 'Azur3Compute!'

PROVIDER_LOCATION = 'azurecompute'
UNRECOGNIZED = 'UNRECOGNIZED'

READY_ROLE_TIMEOUT = 30 * 60

NODE_STATE_MAP = {
    domain.InstanceStatus.READY_ROLE: NodeState.RUNNING,
    domain.InstanceStatus.STOPPED_VM: NodeState.STOPPED,
    domain.InstanceStatus.STOPPED_DEALLOCATED: NodeState.SUSPENDED,
    domain.InstanceStatus.STOPPING_ROLE: NodeState.STOPPING,
    domain.InstanceStatus.STOPPING_VM: NodeState.STOPPING,
    domain.InstanceStatus.CREATING_VM: NodeState.PENDING,
    domain.InstanceStatus.STARTING_VM: NodeState.PENDING,
    domain.InstanceStatus.CREATING_ROLE: NodeState.PENDING,
    domain.InstanceStatus.STARTING_ROLE: NodeState.PENDING,
    domain.InstanceStatus.BUSY_ROLE: NodeState.PENDING,
    domain.InstanceStatus.PROVISIONING: NodeState.PENDING,
    domain.InstanceStatus.PROVISIONING_FAILED: NodeState.ERROR,
    domain.InstanceStatus.DELETING_VM: NodeState.TERMINATED,
}


def _b64(value):
    return base64.b64encode(value.encode('utf-8')).decode('ascii')


def generate_storage_service_name():
    return 'stratus' + ''.join(random.choice(string.ascii_lowercase) for i in range(10))


def media_link(storage_service_name, disk_name):
    return 'https://%s.blob.core.windows.net/vhds/disk-%s.vhd' % (storage_service_name, disk_name)


class AzureResponse(XmlApiResponse):
    pass


class AzureConnection(CertificateConnection):

    """ Requests are authenticated with a management certificate. ``key_file``
    is a PEM holding both the certificate and its private key. """

    responseCls = AzureResponse
    host = API_HOST

    def __init__(self, subscription_id, key_file, *args, **kwargs):
        super(AzureConnection, self).__init__(key_file, *args, **kwargs)
        self.subscription_id = subscription_id
        self.key_file = key_file

    def add_default_headers(self, headers):
        headers['x-ms-version'] = API_VERSION
        headers.setdefault('Content-Type', 'application/xml')
        return headers


class AzureNodeDriver(NodeDriver):

    type = Provider.AZURE
    name = 'Azure'
    website = 'http://azure.microsoft.com'
    connectionCls = AzureConnection
    features = {'create_node': ['password']}

    def __init__(self, subscription_id, key_file, ex_operation_timeout=600,
                 ex_operation_interval=5, **kwargs):
        self.subscription_id = subscription_id
        self.operation_timeout = ex_operation_timeout
        self.operation_interval = ex_operation_interval
        super(AzureNodeDriver, self).__init__(subscription_id, os.path.expanduser(key_file),
                                              secure=True, **kwargs)

    def _path(self, path):
        return '/%s%s' % (self.subscription_id, path)

    def _get(self, path, **kwargs):
        return self.connection.request(self._path(path), **kwargs).object

    def _write(self, path, method='POST', data=None, **kwargs):
        """ Send an asynchronous write and return its request id """
        response = self.connection.request(self._path(path), method=method,
                                           data=data, **kwargs)
        return response.headers.get('x-ms-request-id')

    # Operations

    def ex_get_operation(self, request_id):
        return parsers.parse_operation(self._get('/operations/%s' % request_id))

    def ex_wait_for_operation(self, request_id, timeout=None, what=None):
        what = what or 'Operation(%s)' % request_id

        def succeeded():
            operation = self.ex_get_operation(request_id)
            if operation.status == domain.OperationStatus.FAILED:
                raise OperationFailed('%s failed with %s: %s' % (
                    what, operation.error_code, operation.error_message), driver=self)
            return operation.status == domain.OperationStatus.SUCCEEDED

        logger.debug("awaiting %s", what)
        try:
            wait_for(succeeded, timeout or self.operation_timeout,
                     self.operation_interval, what=what)
        except OperationTimeout:
            logger.warning("%s has not completed within %ss", what, timeout or self.operation_timeout)
            raise
        logger.info("%s succeeded", what)

    # Images, locations and sizes

    def ex_list_os_images(self):
        return parsers.parse_os_images(self._get('/services/images'))

    def list_images(self, location=None):
        images = self.ex_list_os_images()
        if location is not None:
            images = [i for i in images if not i.locations or location.id in i.locations]
        return [self._to_image(i) for i in images]

    def ex_list_locations(self):
        return parsers.parse_locations(self._get('/locations'))

    def list_locations(self):
        return [self._to_location(l) for l in self.ex_list_locations()]

    def ex_list_role_sizes(self):
        return parsers.parse_role_sizes(self._get('/rolesizes'))

    def list_sizes(self, location=None):
        return [self._to_size(s) for s in self.ex_list_role_sizes()
                if s.supported_by_virtual_machines is not False]

    # Cloud services and deployments

    def ex_list_cloud_services(self):
        return parsers.parse_cloud_services(self._get('/services/hostedservices'))

    def ex_create_cloud_service(self, name, location, label=None):
        data = render_template('azure/hosted_service.xml', name=name,
                               label=_b64(label or name), location=location)
        return self._write('/services/hostedservices', data=data)

    def ex_delete_cloud_service(self, name):
        return self._write('/services/hostedservices/%s' % name, method='DELETE')

    def ex_get_deployment(self, service_name, name):
        """ The named deployment of a cloud service, or None """
        try:
            element = self._get('/services/hostedservices/%s/deployments/%s' % (service_name, name))
        except BaseHTTPError as e:
            if e.code == httplib.NOT_FOUND:
                return None
            raise
        return parsers.parse_deployment(element)

    def ex_create_deployment(self, service_name, name, source_image_name, size,
                             media_link, os=domain.ImageType.LINUX,
                             username=DEFAULT_LOGIN_USER,
                             password=DEFAULT_LOGIN_PASSWORD,
                             endpoints=(), virtual_network_name=None,
                             subnet_name=None):
        data = render_template(
            'azure/deployment.xml',
            name=name,
            os=os,
            username=username,
            password=password,
            source_image_name=source_image_name,
            media_link=media_link,
            size=size,
            endpoints=endpoints,
            virtual_network_name=virtual_network_name,
            subnet_name=subnet_name,
            )
        return self._write('/services/hostedservices/%s/deployments' % service_name, data=data)

    def ex_delete_deployment(self, service_name, name):
        return self._write('/services/hostedservices/%s/deployments/%s' % (service_name, name),
                           method='DELETE')

    def ex_delete_disk(self, name):
        return self._write('/services/disks/%s' % name, method='DELETE')

    # Storage

    def ex_list_storage_services(self):
        return parsers.parse_storage_services(self._get('/services/storageservices'))

    def ex_storage_service_name_available(self, name):
        return parsers.parse_availability(
            self._get('/services/storageservices/operations/isavailable/%s' % name))

    def ex_create_storage_service(self, name, location, account_type=DEFAULT_STORAGE_SERVICE_TYPE):
        data = render_template('azure/storage_service.xml', name=name, label=_b64(name),
                               location=location, account_type=account_type)
        return self._write('/services/storageservices', data=data)

    # Virtual networks

    def ex_get_network_configuration(self):
        """ The subscription's network configuration, or None when it has
        never been set """
        try:
            element = self._get('/services/networking/media')
        except BaseHTTPError as e:
            if e.code == httplib.NOT_FOUND:
                return None
            raise
        return parsers.parse_network_configuration(element)

    def ex_set_network_configuration(self, network_configuration):
        data = render_template('azure/network_configuration.xml',
                               dns=network_configuration.dns or [],
                               sites=network_configuration.virtual_network_sites)
        return self._write('/services/networking/media', method='PUT', data=data,
                           headers={'Content-Type': 'text/plain'})

    # Role instances

    def _role_instance_path(self, node):
        return '/services/hostedservices/%s/deployments/%s/roleinstances/%s' % (
            node.extra['service_name'], node.name, node.extra['role_name'])

    def _role_operation(self, node, operation, post_shutdown_action=None):
        data = render_template('azure/role_operation.xml', operation=operation,
                               post_shutdown_action=post_shutdown_action)
        request_id = self._write(self._role_instance_path(node) + '/Operations', data=data)
        self.ex_wait_for_operation(request_id, what='%s of %s' % (operation, node.name))
        return True

    def reboot_node(self, node):
        request_id = self._write(self._role_instance_path(node), params={'comp': 'reboot'})
        self.ex_wait_for_operation(request_id, what='Reboot of %s' % node.name)
        return True

    def ex_start_node(self, node):
        return self._role_operation(node, 'StartRoleOperation')

    def ex_stop_node(self, node, ex_deallocate=False):
        return self._role_operation(
            node, 'ShutdownRoleOperation',
            'StoppedDeallocated' if ex_deallocate else 'Stopped')

    # Nodes

    def list_nodes(self):
        nodes = []
        for service in self.ex_list_cloud_services():
            deployment = self.ex_get_deployment(service.name, service.name)
            if deployment is not None:
                nodes.append(self._to_node(deployment, service))
        return nodes

    def ex_get_node(self, name):
        for service in self.ex_list_cloud_services():
            deployment = self.ex_get_deployment(service.name, name)
            if deployment is not None:
                return self._to_node(deployment, service)
        return None

    def _find_storage_service(self, location, name=None):
        for service in self.ex_list_storage_services():
            if service.location != location or service.status != 'Created':
                continue
            if name is None or service.service_name == name:
                return service
        return None

    def _ensure_storage_service(self, location, name, account_type):
        existing = self._find_storage_service(location, name)
        if existing is not None:
            return existing.service_name

        logger.debug("There are no available storage services in %s", location)
        name = name or generate_storage_service_name()
        if not self.ex_storage_service_name_available(name).result:
            logger.warning("The new storage account name %s is not available", name)
            raise LibcloudError("Can't create a storage account called %s, "
                                "choose a different ex_storage_account_name" % name,
                                driver=self)
        request_id = self.ex_create_storage_service(name, location, account_type)
        self.ex_wait_for_operation(request_id, what='StorageService(%s)' % name)
        return name

    def _ensure_virtual_network(self, location, network_name, address_space,
                                subnet_name, subnet_prefix):
        config = self.ex_get_network_configuration()
        sites = list(config.virtual_network_sites) if config else []
        if any(site.name == network_name for site in sites):
            return
        sites.append(domain.VirtualNetworkSite(
            name=network_name,
            location=location,
            address_space=address_space,
            subnets=[domain.Subnet(name=subnet_name, address_prefix=subnet_prefix)],
            ))
        request_id = self.ex_set_network_configuration(
            domain.NetworkConfiguration(dns=config.dns if config else [], virtual_network_sites=sites))
        self.ex_wait_for_operation(request_id, what='Network configuration')

    def _all_ready(self, name):
        deployment = self.ex_get_deployment(name, name)
        if deployment is None or not deployment.role_instance_list:
            return False
        return all(i.instance_status == domain.InstanceStatus.READY_ROLE
                   for i in deployment.role_instance_list)

    def create_node(self, name, size, image, location,
                    ex_virtual_network_name=DEFAULT_VIRTUAL_NETWORK_NAME,
                    ex_address_space_address_prefix=DEFAULT_ADDRESS_SPACE_ADDRESS_PREFIX,
                    ex_subnet_name=DEFAULT_SUBNET_NAME,
                    ex_subnet_address_prefix=DEFAULT_SUBNET_ADDRESS_PREFIX,
                    ex_storage_account_type=DEFAULT_STORAGE_SERVICE_TYPE,
                    ex_storage_account_name=None,
                    ex_login_user=DEFAULT_LOGIN_USER,
                    ex_login_password=DEFAULT_LOGIN_PASSWORD,
                    ex_inbound_ports=()):
        location_name = location.id

        storage_service_name = self._ensure_storage_service(
            location_name, ex_storage_account_name, ex_storage_account_type)

        self._ensure_virtual_network(location_name, ex_virtual_network_name,
                                     ex_address_space_address_prefix,
                                     ex_subnet_name, ex_subnet_address_prefix)

        request_id = self.ex_create_cloud_service(name, location_name)
        try:
            self.ex_wait_for_operation(request_id, what='Cloud Service(%s)' % name)
        except (OperationTimeout, OperationFailed):
            logger.warning("Cloud Service(%s) was not created so it will be destroyed", name)
            self.ex_delete_cloud_service(name)
            raise

        operating_system = (image.extra or {}).get('operating_system')
        if operating_system is not None and operating_system.family == OsFamily.WINDOWS:
            os = domain.ImageType.WINDOWS
        else:
            os = domain.ImageType.LINUX

        endpoints = [domain.inbound_tcp_to_local_port(p, p) for p in ex_inbound_ports]
        if os == domain.ImageType.LINUX and 22 not in ex_inbound_ports:
            endpoints.append(domain.inbound_tcp_to_local_port(22, 22, name='SSH'))

        request_id = self.ex_create_deployment(
            name, name,
            source_image_name=image.id,
            size=size.id,
            media_link=media_link(storage_service_name, name),
            os=os,
            username=ex_login_user,
            password=ex_login_password,
            endpoints=endpoints,
            virtual_network_name=ex_virtual_network_name,
            subnet_name=ex_subnet_name,
            )
        try:
            self.ex_wait_for_operation(request_id, what='Deployment(%s)' % name)
        except (OperationTimeout, OperationFailed):
            logger.warning("Deployment(%s) was not created so it will be destroyed", name)
            self.ex_delete_deployment(name, name)
            raise

        try:
            wait_for(lambda: self._all_ready(name), READY_ROLE_TIMEOUT, 1,
                     what='Deployment(%s) reaching %s' % (name, domain.InstanceStatus.READY_ROLE))
        except OperationTimeout:
            logger.warning("Instances of %s have not reached %s, so it will be destroyed",
                           name, domain.InstanceStatus.READY_ROLE)
            self.ex_delete_deployment(name, name)
            self.ex_delete_cloud_service(name)
            raise

        node = self._to_node(self.ex_get_deployment(name, name), service_name=name)
        node.extra['username'] = ex_login_user
        node.extra['password'] = ex_login_password
        return node

    def destroy_node(self, node):
        for service in self.ex_list_cloud_services():
            deployment = self.ex_get_deployment(service.name, node.name)
            if deployment is None:
                continue

            request_id = self.ex_delete_deployment(service.name, node.name)
            self.ex_wait_for_operation(
                request_id, what='Deletion of Deployment(%s) of %s' % (node.name, service.name))

            for role in deployment.roles:
                if role.os_virtual_hard_disk is not None and role.os_virtual_hard_disk.disk_name:
                    disk_name = role.os_virtual_hard_disk.disk_name
                    request_id = self.ex_delete_disk(disk_name)
                    self.ex_wait_for_operation(request_id, what='Deletion of Disk(%s)' % disk_name)

            request_id = self.ex_delete_cloud_service(service.name)
            self.ex_wait_for_operation(request_id, what='Deletion of CloudService(%s)' % service.name)
            return True
        return False

    # Converters

    def _to_image(self, image):
        label = image.label or ''
        os = OperatingSystem(
            family=os_family_from_string(label),
            version=version_from_string(label),
            description=image.description or UNRECOGNIZED,
            is_64bit='-x64-' in label,
            )
        return NodeImage(
            id=image.name,
            name=image.name,
            driver=self,
            extra={
                'description': image.description,
                'label': image.label,
                'category': image.category,
                'os': image.os,
                'locations': image.locations,
                'eula': image.eula,
                'status': ImageStatus.AVAILABLE,
                'operating_system': os,
                },
            )

    def _to_location(self, location):
        return NodeLocation(
            id=location.name,
            name=location.display_name,
            country=None,
            driver=self,
            extra={
                'scope': LocationScope.ZONE,
                'parent': PROVIDER_LOCATION,
                'metadata': {'name': location.name},
                'available_services': location.available_services,
                },
            )

    def _to_size(self, size):
        return NodeSize(
            id=size.name,
            name=size.label or size.name,
            ram=size.memory_in_mb,
            disk=(size.virtual_machine_resource_disk_size_in_mb or 0) // 1024,
            bandwidth=None,
            price=None,
            driver=self,
            extra={
                'cores': size.cores,
                'max_data_disk_count': size.max_data_disk_count,
                },
            )

    def _to_node(self, deployment, service=None, service_name=None):
        instances = deployment.role_instance_list or []
        if instances:
            state = NODE_STATE_MAP.get(instances[0].instance_status, NodeState.UNKNOWN)
        else:
            state = NodeState.UNKNOWN

        public_ips = [v.address for v in deployment.virtual_ips or [] if v.address]
        private_ips = [i.ip_address for i in instances if i.ip_address]

        if service is not None:
            service_name = service.name

        role_name = None
        size = None
        image = None
        if deployment.roles:
            role = deployment.roles[0]
            role_name = role.role_name
            size = role.role_size
            if role.os_virtual_hard_disk is not None:
                image = role.os_virtual_hard_disk.source_image_name

        return Node(
            id=deployment.name,
            name=deployment.name,
            state=state,
            public_ips=public_ips,
            private_ips=private_ips,
            driver=self,
            extra={
                'service_name': service_name or deployment.name,
                'role_name': role_name or deployment.name,
                'status': deployment.status,
                'slot': deployment.slot,
                'size': size,
                'image': image,
                'location': service.location if service is not None else None,
                'virtual_network_name': deployment.virtual_network_name,
                'deployment': deployment,
                },
            )
