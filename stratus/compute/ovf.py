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
The bits of the DMTF OVF envelope vCloud Director hands back for templates
and virtual machines.
"""

import re
import collections

VCLOUD_NS = 'http://www.vmware.com/vcloud/v1.5'
OVF_NS = 'http://schemas.dmtf.org/ovf/envelope/1'
RASD_NS = 'http://schemas.dmtf.org/wbem/wscim/1/cim-schema/2/CIM_ResourceAllocationSettingData'
VMW_NS = 'http://www.vmware.com/schema/ovf'


class ResourceType(object):
    """ CIM_ResourceAllocationSettingData.ResourceType values we look at """
    PROCESSOR = '3'
    MEMORY = '4'
    ETHERNET_ADAPTER = '10'
    DISK_DRIVE = '17'


Reference = collections.namedtuple('Reference', ['href', 'id', 'name', 'type'])
Link = collections.namedtuple('Link', ['rel', 'href', 'id', 'name', 'type'])

OperatingSystemSection = collections.namedtuple(
    'OperatingSystemSection', ['id', 'os_type', 'description'])

ResourceAllocationSettingData = collections.namedtuple(
    'ResourceAllocationSettingData',
    ['resource_type', 'element_name', 'virtual_quantity', 'allocation_units',
     'address_on_parent'])

VirtualSystem = collections.namedtuple(
    'VirtualSystem',
    ['id', 'name', 'info', 'operating_system_section', 'virtual_hardware_sections'])

Envelope = collections.namedtuple(
    'Envelope', ['references', 'disk_sections', 'network_sections', 'virtual_system'])


_UNITS = re.compile(r'byte\s*\*\s*2\^(\d+)')


class VirtualHardwareSection(collections.namedtuple('VirtualHardwareSection', ['info', 'items'])):

    def _quantities(self, resource_type):
        for item in self.items:
            if item.resource_type == resource_type and item.virtual_quantity is not None:
                yield item

    @property
    def cpu_count(self):
        return sum(int(i.virtual_quantity) for i in self._quantities(ResourceType.PROCESSOR))

    @property
    def ram_mb(self):
        total = 0
        for item in self._quantities(ResourceType.MEMORY):
            quantity = int(item.virtual_quantity)
            match = _UNITS.search(item.allocation_units or '')
            if match:
                quantity = quantity * 2 ** int(match.group(1)) // 2 ** 20
            total += quantity
        return total


def _q(ns, tag):
    return '{%s}%s' % (ns, tag)


def _text(element, ns, tag):
    child = element.find(_q(ns, tag))
    if child is None:
        return None
    return child.text


def parse_reference(element):
    return Reference(
        href=element.get('href'),
        id=element.get('id'),
        name=element.get('name'),
        type=element.get('type'),
        )


def parse_links(element, namespace=VCLOUD_NS):
    return [Link(rel=link.get('rel'), href=link.get('href'), id=link.get('id'),
                 name=link.get('name'), type=link.get('type'))
            for link in element.findall(_q(namespace, 'Link'))]


def parse_operating_system_section(element):
    return OperatingSystemSection(
        id=element.get(_q(OVF_NS, 'id')),
        os_type=element.get(_q(VMW_NS, 'osType')),
        description=_text(element, OVF_NS, 'Description'),
        )


def parse_virtual_hardware_section(element):
    items = []
    for item in element.findall(_q(OVF_NS, 'Item')):
        items.append(ResourceAllocationSettingData(
            resource_type=_text(item, RASD_NS, 'ResourceType'),
            element_name=_text(item, RASD_NS, 'ElementName'),
            virtual_quantity=_text(item, RASD_NS, 'VirtualQuantity'),
            allocation_units=_text(item, RASD_NS, 'AllocationUnits'),
            address_on_parent=_text(item, RASD_NS, 'AddressOnParent'),
            ))
    return VirtualHardwareSection(info=_text(element, OVF_NS, 'Info'), items=items)


def parse_virtual_system(element):
    os_section = element.find(_q(OVF_NS, 'OperatingSystemSection'))
    return VirtualSystem(
        id=element.get(_q(OVF_NS, 'id')),
        name=_text(element, OVF_NS, 'Name'),
        info=_text(element, OVF_NS, 'Info'),
        operating_system_section=(parse_operating_system_section(os_section)
                                  if os_section is not None else None),
        virtual_hardware_sections=[
            parse_virtual_hardware_section(s)
            for s in element.findall(_q(OVF_NS, 'VirtualHardwareSection'))],
        )


def parse_envelope(element):
    """ Parse an ``ovf:Envelope``. Templates wrap their machines in a
    ``VirtualSystemCollection``, only the first machine is kept. """
    references = [
        Reference(href=f.get(_q(OVF_NS, 'href')), id=f.get(_q(OVF_NS, 'id')),
                  name=None, type=None)
        for f in element.findall('%s/%s' % (_q(OVF_NS, 'References'), _q(OVF_NS, 'File')))]

    disk_sections = [
        dict((k.split('}')[-1], v) for k, v in disk.attrib.items())
        for disk in element.iter(_q(OVF_NS, 'Disk'))]

    network_sections = [
        network.get(_q(OVF_NS, 'name'))
        for network in element.iter(_q(OVF_NS, 'Network'))]

    virtual_system = None
    for vs in element.iter(_q(OVF_NS, 'VirtualSystem')):
        virtual_system = parse_virtual_system(vs)
        break

    return Envelope(
        references=references,
        disk_sections=disk_sections,
        network_sections=network_sections,
        virtual_system=virtual_system,
        )


def virtual_hardware_section_for(element):
    """ The first ``VirtualHardwareSection`` among the sections of a vApp or
    vm, or None. """
    for section in element.iter(_q(OVF_NS, 'VirtualHardwareSection')):
        return parse_virtual_hardware_section(section)
    return None
