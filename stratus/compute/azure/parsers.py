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
ElementTree parsers for the service management API.

Each ``parse_*`` function takes the element libcloud has already parsed out of
the response body and returns the records from :mod:`.domain`.
"""

import base64
import binascii

from stratus.compute.base import parse_date
from stratus.compute.azure import domain

AZURE_NS = 'http://schemas.microsoft.com/windowsazure'
NETWORK_NS = 'http://schemas.microsoft.com/ServiceHosting/2011/07/NetworkConfiguration'


def _q(tag, ns=AZURE_NS):
    return '{%s}%s' % (ns, tag)


def _path(path, ns=AZURE_NS):
    return '/'.join(_q(p, ns) for p in path.split('/'))


def _text(element, path, ns=AZURE_NS):
    child = element.find(_path(path, ns))
    if child is None or child.text is None:
        return None
    text = child.text.strip()
    return text or None


def _int(element, path, ns=AZURE_NS):
    value = _text(element, path, ns)
    if value is None:
        return None
    return int(value)


def _bool(element, path, ns=AZURE_NS):
    value = _text(element, path, ns)
    if value is None:
        return None
    return value.lower() == 'true'


def _label(element, path):
    """ Labels of the services we create come back base64 encoded """
    value = _text(element, path)
    if value is None:
        return None
    try:
        return base64.b64decode(value, validate=True).decode('utf-8')
    except (binascii.Error, UnicodeDecodeError):
        return value


def _split(value):
    if not value:
        return []
    return [v.strip() for v in value.split(';') if v.strip()]


def _items(element, path, parser):
    return [parser(e) for e in element.findall(_path(path))]


def parse_os_image(element):
    os = _text(element, 'OS')
    return domain.OSImage(
        name=_text(element, 'Name'),
        locations=_split(_text(element, 'Location')),
        affinity_group=_text(element, 'AffinityGroup'),
        label=_text(element, 'Label'),
        description=_text(element, 'Description'),
        category=_text(element, 'Category'),
        os=os.upper() if os else None,
        media_link=_text(element, 'MediaLink'),
        logical_size_in_gb=_int(element, 'LogicalSizeInGB'),
        # some publishers put free text rather than links in here
        eula=[e for e in _split(_text(element, 'Eula')) if e.startswith(('http://', 'https://'))],
        image_family=_text(element, 'ImageFamily'),
        published_date=parse_date(_text(element, 'PublishedDate')),
        icon_uri=_text(element, 'IconUri'),
        small_icon_uri=_text(element, 'SmallIconUri'),
        privacy_uri=_text(element, 'PrivacyUri'),
        pricing_detail_link=_text(element, 'PricingDetailLink'),
        recommended_vm_size=_text(element, 'RecommendedVMSize'),
        is_premium=_bool(element, 'IsPremium'),
        show_in_gui=_bool(element, 'ShowInGui'),
        publisher_name=_text(element, 'PublisherName'),
        )


def parse_os_images(element):
    return _items(element, 'OSImage', parse_os_image)


def parse_location(element):
    return domain.Location(
        name=_text(element, 'Name'),
        display_name=_text(element, 'DisplayName'),
        available_services=[s.text for s in element.findall(_path('AvailableServices/AvailableService'))],
        )


def parse_locations(element):
    return _items(element, 'Location', parse_location)


def parse_role_size(element):
    return domain.RoleSize(
        name=_text(element, 'Name'),
        label=_text(element, 'Label'),
        cores=_int(element, 'Cores'),
        memory_in_mb=_int(element, 'MemoryInMb'),
        supported_by_web_worker_roles=_bool(element, 'SupportedByWebWorkerRoles'),
        supported_by_virtual_machines=_bool(element, 'SupportedByVirtualMachines'),
        max_data_disk_count=_int(element, 'MaxDataDiskCount'),
        web_worker_resource_disk_size_in_mb=_int(element, 'WebWorkerResourceDiskSizeInMb'),
        virtual_machine_resource_disk_size_in_mb=_int(element, 'VirtualMachineResourceDiskSizeInMb'),
        )


def parse_role_sizes(element):
    return _items(element, 'RoleSize', parse_role_size)


def parse_cloud_service(element):
    return domain.CloudService(
        name=_text(element, 'ServiceName'),
        location=_text(element, 'HostedServiceProperties/Location'),
        affinity_group=_text(element, 'HostedServiceProperties/AffinityGroup'),
        label=_label(element, 'HostedServiceProperties/Label'),
        status=_text(element, 'HostedServiceProperties/Status'),
        created=parse_date(_text(element, 'HostedServiceProperties/DateCreated')),
        last_modified=parse_date(_text(element, 'HostedServiceProperties/DateLastModified')),
        )


def parse_cloud_services(element):
    return _items(element, 'HostedService', parse_cloud_service)


def parse_input_endpoint(element):
    return domain.InputEndpoint(
        name=_text(element, 'Name'),
        port=_int(element, 'Port'),
        local_port=_int(element, 'LocalPort'),
        protocol=_text(element, 'Protocol'),
        vip=_text(element, 'Vip'),
        enable_direct_server_return=_bool(element, 'EnableDirectServerReturn'),
        )


def parse_configuration_set(element):
    return domain.ConfigurationSet(
        configuration_set_type=_text(element, 'ConfigurationSetType'),
        input_endpoints=_items(element, 'InputEndpoints/InputEndpoint', parse_input_endpoint),
        subnet_names=[s.text for s in element.findall(_path('SubnetNames/SubnetName'))],
        static_virtual_network_ip_address=_text(element, 'StaticVirtualNetworkIPAddress'),
        public_ips=[p.text for p in element.findall(_path('PublicIPs/PublicIP/Name'))],
        network_security_group=_text(element, 'NetworkSecurityGroup'),
        )


def parse_data_virtual_hard_disk(element):
    return domain.DataVirtualHardDisk(
        host_caching=_text(element, 'HostCaching'),
        disk_name=_text(element, 'DiskName'),
        lun=_int(element, 'Lun'),
        logical_disk_size_in_gb=_int(element, 'LogicalDiskSizeInGB'),
        media_link=_text(element, 'MediaLink'),
        )


def parse_os_virtual_hard_disk(element):
    os = _text(element, 'OS')
    return domain.OSVirtualHardDisk(
        host_caching=_text(element, 'HostCaching'),
        disk_name=_text(element, 'DiskName'),
        lun=_int(element, 'Lun'),
        logical_disk_size_in_gb=_int(element, 'LogicalDiskSizeInGB'),
        media_link=_text(element, 'MediaLink'),
        source_image_name=_text(element, 'SourceImageName'),
        os=os.upper() if os else None,
        )


def parse_role(element):
    os_disk = element.find(_q('OSVirtualHardDisk'))
    return domain.Role(
        role_name=_text(element, 'RoleName'),
        os_version=_text(element, 'OsVersion'),
        role_type=_text(element, 'RoleType'),
        configuration_sets=_items(element, 'ConfigurationSets/ConfigurationSet', parse_configuration_set),
        data_virtual_hard_disks=_items(element, 'DataVirtualHardDisks/DataVirtualHardDisk',
                                       parse_data_virtual_hard_disk),
        os_virtual_hard_disk=parse_os_virtual_hard_disk(os_disk) if os_disk is not None else None,
        role_size=_text(element, 'RoleSize'),
        )


def parse_instance_endpoint(element):
    return domain.InstanceEndpoint(
        name=_text(element, 'Name'),
        vip=_text(element, 'Vip'),
        public_port=_int(element, 'PublicPort'),
        local_port=_int(element, 'LocalPort'),
        protocol=_text(element, 'Protocol'),
        )


def parse_role_instance(element):
    return domain.RoleInstance(
        role_name=_text(element, 'RoleName'),
        instance_name=_text(element, 'InstanceName'),
        instance_status=_text(element, 'InstanceStatus'),
        instance_size=_text(element, 'InstanceSize'),
        ip_address=_text(element, 'IpAddress'),
        power_state=_text(element, 'PowerState'),
        host_name=_text(element, 'HostName'),
        instance_endpoints=_items(element, 'InstanceEndpoints/InstanceEndpoint', parse_instance_endpoint),
        )


def parse_virtual_ip(element):
    return domain.VirtualIP(
        address=_text(element, 'Address'),
        is_dns_programmed=_bool(element, 'IsDnsProgrammed'),
        name=_text(element, 'Name'),
        )


def parse_deployment(element):
    return domain.Deployment(
        name=_text(element, 'Name'),
        slot=_text(element, 'DeploymentSlot'),
        status=_text(element, 'Status'),
        label=_label(element, 'Label'),
        virtual_ips=_items(element, 'VirtualIPs/VirtualIP', parse_virtual_ip),
        role_instance_list=_items(element, 'RoleInstanceList/RoleInstance', parse_role_instance),
        roles=_items(element, 'RoleList/Role', parse_role),
        virtual_network_name=_text(element, 'VirtualNetworkName'),
        )


def parse_storage_service(element):
    return domain.StorageService(
        service_name=_text(element, 'ServiceName'),
        url=_text(element, 'Url'),
        location=_text(element, 'StorageServiceProperties/Location'),
        status=_text(element, 'StorageServiceProperties/Status'),
        label=_label(element, 'StorageServiceProperties/Label'),
        account_type=_text(element, 'StorageServiceProperties/AccountType'),
        )


def parse_storage_services(element):
    return _items(element, 'StorageService', parse_storage_service)


def parse_availability(element):
    return domain.Availability(
        result=bool(_bool(element, 'Result')),
        reason=_text(element, 'Reason'),
        )


def parse_operation(element):
    status = _text(element, 'Status')
    if status not in (domain.OperationStatus.IN_PROGRESS,
                      domain.OperationStatus.SUCCEEDED,
                      domain.OperationStatus.FAILED):
        status = domain.OperationStatus.UNRECOGNIZED
    return domain.Operation(
        id=_text(element, 'ID'),
        status=status,
        http_status_code=_int(element, 'HttpStatusCode'),
        error_code=_text(element, 'Error/Code'),
        error_message=_text(element, 'Error/Message'),
        )


def parse_subnet(element):
    return domain.Subnet(
        name=element.get('name'),
        address_prefix=_text(element, 'AddressPrefix', NETWORK_NS),
        )


def parse_virtual_network_site(element):
    return domain.VirtualNetworkSite(
        name=element.get('name'),
        location=element.get('Location'),
        address_space=_text(element, 'AddressSpace/AddressPrefix', NETWORK_NS),
        subnets=[parse_subnet(s) for s in element.findall(_path('Subnets/Subnet', NETWORK_NS))],
        )


def parse_network_configuration(element):
    config = element.find(_q('VirtualNetworkConfiguration', NETWORK_NS))
    if config is None:
        return domain.NetworkConfiguration(dns=[], virtual_network_sites=[])
    dns = config.find(_q('Dns', NETWORK_NS))
    sites = config.findall(_path('VirtualNetworkSites/VirtualNetworkSite', NETWORK_NS))
    return domain.NetworkConfiguration(
        dns=[domain.DnsServer(name=s.get('name'), address=s.get('IPAddress'))
             for s in dns.iter(_q('DnsServer', NETWORK_NS))] if dns is not None else [],
        virtual_network_sites=[parse_virtual_network_site(s) for s in sites],
        )
