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

import json
import unittest

from mock import MagicMock as Mock

from libcloud.common.types import LibcloudError
from libcloud.common.exceptions import BaseHTTPError
from libcloud.compute.base import Node
from libcloud.compute.types import NodeState

from stratus.compute import xstream
from stratus.compute.base import OsFamily, UnsupportedOperation


VM = {
    "VirtualMachineID": "d8cc2cb0-4f6f-4a8b-9e4c-000000000001",
    "Name": "/web-1",
    "DnsName": "web-1.example.com",
    "IPAddress": "10.12.0.5",
    "PowerState": "PoweredOn",
    "RamAllocatedMB": 2048,
    "CpuShares": 2000,
    "CpuLimitMHz": 4000,
    "NumCpu": 2,
    "OS": "CentOS 4/5/6 (64-bit)",
    "OSFullName": "CentOS 6.5 (64-bit)",
    "IsTemplate": False,
    "TenantID": "tenant-1",
    "SourceTemplateID": "template-1",
}

TEMPLATE = {
    "VirtualMachineID": "template-1",
    "Name": "CentOS 6.5:base",
    "OS": "CentOS 4/5/6 (64-bit)",
    "OSFullName": "CentOS 6.5 (64-bit)",
    "IsTemplate": True,
}


def response(obj=None, status=200):
    return Mock(object=obj, status=status, headers={})


class TestVirtualMachineToImage(unittest.TestCase):

    def test_centos_version_is_sliced_from_the_full_name(self):
        self.assertEqual(xstream.os_version("CentOS 5.10.1 (64-bit)"), "5.10.1")

    def test_ubuntu_version(self):
        self.assertEqual(xstream.os_version("ubuntu12 LTS"), "1")

    def test_rhel_version(self):
        self.assertEqual(xstream.os_version("Red Hat Enterprise Linux 6 (64-bit)"), "6")

    def test_unrecognized(self):
        self.assertEqual(xstream.os_version("Microsoft Windows Server 2008"), "UNRECOGNIZED")
        self.assertEqual(xstream.os_family("Microsoft Windows Server 2008"), OsFamily.UNRECOGNIZED)

    def test_families(self):
        self.assertEqual(xstream.os_family("CentOS 6"), OsFamily.CENTOS)
        self.assertEqual(xstream.os_family("ubuntu64Guest"), OsFamily.UBUNTU)
        self.assertEqual(xstream.os_family("Red Hat Enterprise Linux 6"), OsFamily.RHEL)


class TestXStreamNodeDriver(unittest.TestCase):

    def setUp(self):
        self.driver = xstream.XStreamNodeDriver("user", "pass", host="xstream.example.com",
                                                tenant_id="tenant-1")
        self.request = self.driver.connection.request = Mock()

    def test_list_images(self):
        self.request.return_value = response([TEMPLATE])
        images = self.driver.list_images()
        self.request.assert_called_once_with(
            '/api/v1.3/VirtualMachine',
            params={'$filter': 'IsTemplate eq true and IsRemoved eq false and TenantID eq tenant-1'})
        self.assertEqual(images[0].id, "template-1")
        self.assertEqual(images[0].name, "CentOS 6.5")
        os = images[0].extra['operating_system']
        self.assertEqual(os.family, OsFamily.CENTOS)
        self.assertTrue(os.is_64bit)
        self.assertEqual(images[0].extra['description'], "CentOS 6.5 (64-bit)")

    def test_list_images_needs_a_tenant(self):
        self.driver.tenant_id = None
        self.assertRaises(LibcloudError, self.driver.list_images)

    def test_list_nodes(self):
        self.request.side_effect = [
            response({"value": [TEMPLATE]}),
            response({"value": [VM]}),
            ]
        nodes = self.driver.list_nodes()
        self.assertEqual(self.request.call_args_list[1][1]['params'],
                         {'$filter': 'IsTemplate eq false and IsRemoved eq false'})
        node = nodes[0]
        self.assertEqual(node.name, "web-1")
        self.assertEqual(node.state, NodeState.RUNNING)
        self.assertEqual(node.public_ips, ["xstream.example.com"])
        self.assertEqual(node.private_ips, ["10.12.0.5"])
        self.assertEqual(node.extra['hostname'], "web-1.example.com")
        self.assertEqual(node.size.ram, 2048)
        self.assertEqual(node.size.extra['cpu_shares'], 2000)
        self.assertEqual(node.size.extra['cpu_limit_mhz'], 4000)
        self.assertEqual(node.image.id, "template-1")
        self.assertEqual(node.extra['operating_system'].family, OsFamily.CENTOS)

    def test_list_nodes_not_found_is_empty(self):
        self.request.side_effect = BaseHTTPError(404, "Not Found")
        self.assertEqual(self.driver.list_nodes(ex_resolve_images=False), [])

    def test_other_errors_propagate(self):
        self.request.side_effect = BaseHTTPError(500, "Oops")
        self.assertRaises(BaseHTTPError, self.driver.list_nodes, ex_resolve_images=False)

    def test_get_node(self):
        self.request.return_value = response({"value": [VM]})
        node = self.driver.ex_get_node(VM["VirtualMachineID"])
        self.assertEqual(node.name, "web-1")

    def test_get_missing_node(self):
        self.request.side_effect = BaseHTTPError(404, "Not Found")
        self.assertEqual(self.driver.ex_get_node("gone"), None)

    def test_get_node_empty_result(self):
        self.request.return_value = response({"value": []})
        self.assertEqual(self.driver.ex_get_node("gone"), None)

    def test_actions(self):
        self.request.return_value = response(None, 204)
        node = Node(VM["VirtualMachineID"], "web-1", NodeState.RUNNING, [], [], self.driver)
        self.assertTrue(self.driver.reboot_node(node))
        self.request.assert_called_with(
            '/api/v1.3/VirtualMachine/%s/RebootOS' % VM["VirtualMachineID"], method='POST')
        self.assertTrue(self.driver.destroy_node(node))
        self.request.assert_called_with(
            '/api/v1.3/VirtualMachine/%s/Remove' % VM["VirtualMachineID"], method='POST')
        self.driver.ex_power_off(node)
        self.request.assert_called_with(
            '/api/v1.3/VirtualMachine/%s/PowerOff' % VM["VirtualMachineID"], method='POST')

    def test_mark_as_template(self):
        self.request.return_value = response(None, 200)
        node = Node("vm-1", "web-1", NodeState.RUNNING, [], [], self.driver)
        self.driver.ex_mark_as_template(node)
        self.request.assert_called_once_with('/api/v1.3/VirtualMachine/MarkAsTemplate',
                                             data='"vm-1"', method='POST')

    def test_suspend_and_resume_unsupported(self):
        node = Node("vm-1", "web-1", NodeState.RUNNING, [], [], self.driver)
        self.assertRaises(UnsupportedOperation, self.driver.ex_suspend_node, node)
        self.assertRaises(UnsupportedOperation, self.driver.ex_resume_node, node)

    def test_create_node(self):
        self.request.side_effect = [
            response({"VirtualMachineID": "vm-1"}),
            response(None, 204),
            response(dict(VM, VirtualMachineID="vm-1")),
            ]
        image = self.driver._to_image(TEMPLATE)
        size = self.driver.list_sizes()[1]
        node = self.driver.create_node("web-1", size, image, ex_login_user="root",
                                       ex_login_password="secret")
        setvm = self.request.call_args_list[0]
        self.assertEqual(setvm[0][0], '/api/v1.3/VirtualMachine/SetVM')
        payload = json.loads(setvm[1]['data'])
        self.assertEqual(payload['SourceTemplateID'], "template-1")
        self.assertEqual(payload['RamAllocatedMB'], 1024)
        self.assertEqual(payload['TenantID'], "tenant-1")
        self.assertEqual(self.request.call_args_list[1][0][0], '/api/v1.3/VirtualMachine/vm-1/PowerOn')
        self.assertEqual(node.id, "vm-1")
        self.assertEqual(node.extra['password'], "secret")

    def test_create_node_that_fails_to_start_is_removed(self):
        self.request.side_effect = [
            response({"VirtualMachineID": "vm-1"}),
            response(None, 204),
            response(dict(VM, VirtualMachineID="vm-1", State={"ExitCode": 1})),
            response(None, 204),
            ]
        image = self.driver._to_image(TEMPLATE)
        size = self.driver.list_sizes()[0]
        self.assertRaises(LibcloudError, self.driver.create_node, "web-1", size, image)
        self.request.assert_called_with('/api/v1.3/VirtualMachine/vm-1/Remove', method='POST')
