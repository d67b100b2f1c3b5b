# Copyright 2014 Isotoma Limited
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#   http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

import unittest
from xml.etree import ElementTree

from stratus.compute import ovf


ENVELOPE = """<?xml version="1.0" encoding="UTF-8"?>
<ovf:Envelope xmlns:ovf="http://schemas.dmtf.org/ovf/envelope/1"
    xmlns:rasd="http://schemas.dmtf.org/wbem/wscim/1/cim-schema/2/CIM_ResourceAllocationSettingData"
    xmlns:vmw="http://www.vmware.com/schema/ovf">
  <ovf:References>
    <ovf:File ovf:href="disk-0.vmdk" ovf:id="file1"/>
  </ovf:References>
  <ovf:DiskSection>
    <ovf:Info>Virtual disk information</ovf:Info>
    <ovf:Disk ovf:capacity="16" ovf:diskId="vmdisk1" ovf:fileRef="file1"/>
  </ovf:DiskSection>
  <ovf:NetworkSection>
    <ovf:Info>The list of logical networks</ovf:Info>
    <ovf:Network ovf:name="none"/>
  </ovf:NetworkSection>
  <ovf:VirtualSystemCollection ovf:id="ubuntu1204">
    <ovf:VirtualSystem ovf:id="vm-1">
      <ovf:Info>A virtual machine</ovf:Info>
      <ovf:Name>ubuntu1204</ovf:Name>
      <ovf:OperatingSystemSection ovf:id="94" vmw:osType="ubuntu64Guest">
        <ovf:Info>Specifies the operating system installed</ovf:Info>
        <ovf:Description>Ubuntu Linux (64-bit)</ovf:Description>
      </ovf:OperatingSystemSection>
      <ovf:VirtualHardwareSection>
        <ovf:Info>Virtual hardware requirements</ovf:Info>
        <ovf:Item>
          <rasd:AllocationUnits>hertz * 10^6</rasd:AllocationUnits>
          <rasd:ElementName>2 virtual CPU(s)</rasd:ElementName>
          <rasd:ResourceType>3</rasd:ResourceType>
          <rasd:VirtualQuantity>2</rasd:VirtualQuantity>
        </ovf:Item>
        <ovf:Item>
          <rasd:AllocationUnits>byte * 2^30</rasd:AllocationUnits>
          <rasd:ElementName>1 GB of memory</rasd:ElementName>
          <rasd:ResourceType>4</rasd:ResourceType>
          <rasd:VirtualQuantity>1</rasd:VirtualQuantity>
        </ovf:Item>
        <ovf:Item>
          <rasd:AddressOnParent>0</rasd:AddressOnParent>
          <rasd:ElementName>Network adapter 0</rasd:ElementName>
          <rasd:ResourceType>10</rasd:ResourceType>
        </ovf:Item>
      </ovf:VirtualHardwareSection>
    </ovf:VirtualSystem>
  </ovf:VirtualSystemCollection>
</ovf:Envelope>
"""

VM = """<Vm xmlns="http://www.vmware.com/vcloud/v1.5"
    xmlns:ovf="http://schemas.dmtf.org/ovf/envelope/1"
    xmlns:rasd="http://schemas.dmtf.org/wbem/wscim/1/cim-schema/2/CIM_ResourceAllocationSettingData"
    name="web" href="https://vcloud.example.com/api/vApp/vm-1">
  <Link rel="up" href="https://vcloud.example.com/api/vApp/vapp-1" type="application/vnd.vmware.vcloud.vApp+xml"/>
  <Link rel="power:powerOff" href="https://vcloud.example.com/api/vApp/vm-1/power/action/powerOff"/>
  <ovf:VirtualHardwareSection>
    <ovf:Info>Virtual hardware requirements</ovf:Info>
    <ovf:Item>
      <rasd:ResourceType>3</rasd:ResourceType>
      <rasd:VirtualQuantity>1</rasd:VirtualQuantity>
    </ovf:Item>
    <ovf:Item>
      <rasd:AllocationUnits>byte * 2^20</rasd:AllocationUnits>
      <rasd:ResourceType>4</rasd:ResourceType>
      <rasd:VirtualQuantity>512</rasd:VirtualQuantity>
    </ovf:Item>
  </ovf:VirtualHardwareSection>
</Vm>
"""


class TestEnvelope(unittest.TestCase):

    def setUp(self):
        self.envelope = ovf.parse_envelope(ElementTree.fromstring(ENVELOPE))

    def test_references(self):
        self.assertEqual(self.envelope.references[0].href, "disk-0.vmdk")
        self.assertEqual(self.envelope.references[0].id, "file1")

    def test_sections(self):
        self.assertEqual(self.envelope.disk_sections[0]["capacity"], "16")
        self.assertEqual(self.envelope.network_sections, ["none"])

    def test_virtual_system(self):
        vs = self.envelope.virtual_system
        self.assertEqual(vs.id, "vm-1")
        self.assertEqual(vs.name, "ubuntu1204")
        self.assertEqual(vs.operating_system_section.os_type, "ubuntu64Guest")
        self.assertEqual(vs.operating_system_section.description, "Ubuntu Linux (64-bit)")

    def test_hardware(self):
        hardware = self.envelope.virtual_system.virtual_hardware_sections[0]
        self.assertEqual(len(hardware.items), 3)
        self.assertEqual(hardware.cpu_count, 2)
        self.assertEqual(hardware.ram_mb, 1024)
        self.assertEqual(hardware.items[2].address_on_parent, "0")


class TestVmSections(unittest.TestCase):

    def setUp(self):
        self.vm = ElementTree.fromstring(VM)

    def test_hardware_for_vm(self):
        hardware = ovf.virtual_hardware_section_for(self.vm)
        self.assertEqual(hardware.cpu_count, 1)
        self.assertEqual(hardware.ram_mb, 512)

    def test_no_hardware(self):
        self.assertEqual(ovf.virtual_hardware_section_for(ElementTree.fromstring("<Vm/>")), None)

    def test_links(self):
        links = ovf.parse_links(self.vm)
        self.assertEqual([l.rel for l in links], ["up", "power:powerOff"])
        self.assertEqual(links[0].type, "application/vnd.vmware.vcloud.vApp+xml")
