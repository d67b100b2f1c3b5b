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

""" ElementTree parsers for vCloud Director 1.5 entities. """

from stratus.compute import ovf
from stratus.compute.ovf import VCLOUD_NS, OVF_NS
from stratus.compute.vcloud import domain


def _q(tag, ns=VCLOUD_NS):
    return '{%s}%s' % (ns, tag)


def _path(path):
    return '/'.join(_q(p) for p in path.split('/'))


def _text(element, path):
    child = element.find(_path(path))
    if child is None or child.text is None:
        return None
    return child.text.strip()


def _bool(element, path):
    value = _text(element, path)
    if value is None:
        return None
    return value.lower() == 'true'


def _status(element):
    value = element.get('status')
    if value is None:
        return None
    try:
        return int(value)
    except ValueError:
        return value


def parse_session(element):
    return domain.Session(
        user=element.get('user'),
        org=element.get('org'),
        href=element.get('href'),
        links=ovf.parse_links(element),
        )


def parse_org_list(element):
    return [ovf.parse_reference(org) for org in element.findall(_q('Org'))]


def parse_org(element):
    return domain.Org(
        name=element.get('name'),
        full_name=_text(element, 'FullName'),
        href=element.get('href'),
        links=ovf.parse_links(element),
        )


def parse_vdc(element):
    return domain.Vdc(
        id=element.get('id'),
        name=element.get('name'),
        href=element.get('href'),
        resource_entities=[ovf.parse_reference(r) for r in element.findall(_path('ResourceEntities/ResourceEntity'))],
        available_networks=[ovf.parse_reference(n) for n in element.findall(_path('AvailableNetworks/Network'))],
        links=ovf.parse_links(element),
        )


def parse_task(element):
    error = element.find(_q('Error'))
    return domain.Task(
        href=element.get('href'),
        status=element.get('status'),
        operation=element.get('operation'),
        error_message=error.get('message') if error is not None else None,
        )


def parse_tasks(element):
    return [parse_task(t) for t in element.findall(_path('Tasks/Task'))]


def parse_network(element):
    return domain.Network(
        name=element.get('name'),
        href=element.get('href'),
        fence_mode=_text(element, 'Configuration/FenceMode'),
        tasks=parse_tasks(element),
        )


def parse_network_connection(element):
    index = _text(element, 'NetworkConnectionIndex')
    return domain.NetworkConnection(
        network=element.get('network'),
        index=int(index) if index is not None else None,
        ip_address=_text(element, 'IpAddress'),
        external_ip_address=_text(element, 'ExternalIpAddress'),
        mac_address=_text(element, 'MACAddress'),
        is_connected=_bool(element, 'IsConnected'),
        allocation_mode=_text(element, 'IpAddressAllocationMode'),
        )


def parse_guest_customization_section(element):
    return domain.GuestCustomizationSection(
        enabled=_bool(element, 'Enabled'),
        admin_password_enabled=_bool(element, 'AdminPasswordEnabled'),
        admin_password_auto=_bool(element, 'AdminPasswordAuto'),
        admin_password=_text(element, 'AdminPassword'),
        reset_password_required=_bool(element, 'ResetPasswordRequired'),
        computer_name=_text(element, 'ComputerName'),
        )


def parse_vm(element):
    os_section = element.find(_q('OperatingSystemSection', OVF_NS))
    guest = element.find(_q('GuestCustomizationSection'))
    return domain.Vm(
        id=element.get('id'),
        name=element.get('name'),
        href=element.get('href'),
        type=element.get('type'),
        status=_status(element),
        links=ovf.parse_links(element),
        tasks=parse_tasks(element),
        network_connections=[parse_network_connection(c) for c in
                             element.findall(_path('NetworkConnectionSection/NetworkConnection'))],
        operating_system_section=(ovf.parse_operating_system_section(os_section)
                                  if os_section is not None else None),
        virtual_hardware_section=ovf.virtual_hardware_section_for(element),
        guest_customization_section=(parse_guest_customization_section(guest)
                                     if guest is not None else None),
        )


def parse_children(element):
    return [parse_vm(vm) for vm in element.findall(_path('Children/Vm'))]


def parse_vapp(element):
    return domain.VApp(
        id=element.get('id'),
        name=element.get('name'),
        href=element.get('href'),
        status=_status(element),
        links=ovf.parse_links(element),
        tasks=parse_tasks(element),
        children=parse_children(element),
        )


def parse_vapp_template(element):
    return domain.VAppTemplate(
        id=element.get('id'),
        name=element.get('name'),
        href=element.get('href'),
        description=_text(element, 'Description'),
        status=_status(element),
        children=parse_children(element),
        links=ovf.parse_links(element),
        )


def parse_query_result_records(element):
    records = []
    for child in element:
        tag = child.tag.split('}')[-1]
        if tag.endswith('Record'):
            records.append(domain.QueryResultRecord(record_type=tag, attributes=dict(child.attrib)))
    return records
