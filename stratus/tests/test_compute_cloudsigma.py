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
from libcloud.compute.base import Node
from libcloud.compute.types import NodeState

from stratus.compute import cloudsigma
from stratus.compute.base import OsFamily


SERVER = {
    "uuid": "a265c47f-1a00-4095-acfc-2193622bfbd8",
    "name": "web",
    "status": "running",
    "cpu": 1000,
    "mem": 536870912,
    "drives": [{"boot_order": 1, "dev_channel": "0:0", "device": "virtio",
                "drive": {"uuid": "ae78e68c-9daa-4471-8878-0bb87fa80260"}}],
    "nics": [
        {"ip_v4_conf": {"conf": "dhcp"}, "model": "virtio",
         "runtime": {"ip_v4": {"uuid": "185.12.5.7"}, "interface_type": "public"}},
        {"vlan": {"uuid": "v1"}, "runtime": None},
        ],
    "meta": {},
}


def response(obj=None, status=200):
    return Mock(object=obj, status=status, headers={})


class TestDomain(unittest.TestCase):

    def test_fields_group(self):
        group = cloudsigma.DrivesListRequestFieldsGroup(["uuid", "name", "status"])
        self.assertEqual(str(group), "uuid,name,status")

    def test_availability_group(self):
        a = cloudsigma.ServerAvailabilityGroup(["u1", "u2"])
        self.assertEqual(str(a), "u1,u2")
        self.assertEqual(a, cloudsigma.ServerAvailabilityGroup(["u1", "u2"]))
        self.assertNotEqual(a, cloudsigma.ServerAvailabilityGroup(["u2", "u1"]))
        self.assertEqual(hash(a), hash(cloudsigma.ServerAvailabilityGroup(["u1", "u2"])))


class TestCloudSigmaNodeDriver(unittest.TestCase):

    def setUp(self):
        self.driver = cloudsigma.CloudSigmaNodeDriver("user@example.com", "pass", region="lvs")
        self.request = self.driver.connection.request = Mock()

    def test_host(self):
        self.assertEqual(self.driver.connection.host, "lvs.cloudsigma.com")

    def test_list_nodes(self):
        self.request.return_value = response({"meta": {}, "objects": [SERVER]})
        node = self.driver.list_nodes()[0]
        self.request.assert_called_once_with('/api/2.0/servers/detail/')
        self.assertEqual(node.state, NodeState.RUNNING)
        self.assertEqual(node.public_ips, ["185.12.5.7"])
        self.assertEqual(node.extra['drives'], ["ae78e68c-9daa-4471-8878-0bb87fa80260"])

    def test_list_images(self):
        self.request.return_value = response({"objects": [{
            "uuid": "6d53b92c-42dc-472b-a7b6-7021f45c377a",
            "name": "Ubuntu 12.04 Server",
            "os": "linux",
            "distribution": "Ubuntu",
            "version": "12.04",
            "arch": "64",
            "size": 1073741824,
            }]})
        image = self.driver.list_images()[0]
        os = image.extra['operating_system']
        self.assertEqual(os.family, OsFamily.UBUNTU)
        self.assertEqual(os.version, "12.04")
        self.assertTrue(os.is_64bit)

    def test_list_drives_with_fields(self):
        self.request.return_value = response({"objects": []})
        group = cloudsigma.DrivesListRequestFieldsGroup(["uuid", "name"])
        self.driver.ex_list_drives(group)
        self.request.assert_called_once_with('/api/2.0/drives/detail/', params={'fields': 'uuid,name'})

    def test_availability_groups(self):
        self.request.return_value = response([["u1", "u2"], ["u3"]])
        groups = self.driver.ex_list_servers_availability_groups()
        self.assertEqual(groups, [cloudsigma.ServerAvailabilityGroup(["u1", "u2"]),
                                  cloudsigma.ServerAvailabilityGroup(["u3"])])

    def test_create_node(self):
        self.request.side_effect = [
            response({"objects": [{"uuid": "drive-1"}]}, 202),
            response({"uuid": "drive-1", "status": "unmounted"}),
            response({"objects": [dict(SERVER, status="stopped")]}, 201),
            response({"action": "start", "result": "success"}, 202),
            ]
        image = cloudsigma.NodeImage("lib-1", "Ubuntu", self.driver)
        size = self.driver.list_sizes()[0]
        avoid = cloudsigma.ServerAvailabilityGroup(["u1", "u2"])
        node = self.driver.create_node("web", size, image, ex_vnc_password="vncpass",
                                       ex_avoid=avoid)

        clone, poll, create, start = self.request.call_args_list
        self.assertEqual(clone[0][0], '/api/2.0/libdrives/lib-1/action/')
        self.assertEqual(clone[1]['params'], {'do': 'clone'})
        self.assertEqual(poll[0][0], '/api/2.0/drives/drive-1/')
        server = json.loads(create[1]['data'])['objects'][0]
        self.assertEqual(server['mem'], 512 * 1024 * 1024)
        self.assertEqual(server['drives'][0]['drive'], "drive-1")
        self.assertEqual(server['nics'][0]['ip_v4_conf'], {'conf': 'dhcp'})
        self.assertEqual(start[1]['params'], {'do': 'start', 'avoid': 'u1,u2'})
        self.assertEqual(node.extra['password'], "vncpass")

    def test_create_node_needs_vnc_password(self):
        image = cloudsigma.NodeImage("lib-1", "Ubuntu", self.driver)
        size = self.driver.list_sizes()[0]
        self.assertRaises(LibcloudError, self.driver.create_node, "web", size, image)

    def test_destroy_running_node_stops_first(self):
        self.request.side_effect = [
            response({"action": "stop"}, 202),
            response(dict(SERVER, status="stopped")),
            response(None, 204),
            ]
        node = Node(SERVER["uuid"], "web", NodeState.RUNNING, [], [], self.driver)
        self.assertTrue(self.driver.destroy_node(node))
        self.request.assert_called_with('/api/2.0/servers/%s/' % SERVER["uuid"],
                                        params={'recurse': 'all_drives'}, method='DELETE')
