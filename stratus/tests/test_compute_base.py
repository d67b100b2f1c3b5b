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

import datetime
import unittest

import mock
from dateutil import tz

from libcloud.common.types import InvalidCredsError

from stratus.compute import base
from stratus.compute.base import OsFamily


class TestOperatingSystem(unittest.TestCase):

    def test_defaults(self):
        os = base.OperatingSystem()
        self.assertEqual(os.family, OsFamily.UNRECOGNIZED)
        self.assertEqual(os.version, None)
        self.assertEqual(os.is_64bit, False)

    def test_family(self):
        self.assertEqual(base.os_family_from_string("Ubuntu Server 14.04 LTS"), OsFamily.UBUNTU)
        self.assertEqual(base.os_family_from_string("Red Hat Enterprise Linux 6"), OsFamily.RHEL)
        self.assertEqual(base.os_family_from_string("Windows Server 2012 R2"), OsFamily.WINDOWS)
        self.assertEqual(base.os_family_from_string("Plan 9"), OsFamily.UNRECOGNIZED)
        self.assertEqual(base.os_family_from_string(None), OsFamily.UNRECOGNIZED)

    def test_version(self):
        self.assertEqual(base.version_from_string("Ubuntu Server 14.04 LTS"), "14.04")
        self.assertEqual(base.version_from_string("CentOS"), None)
        self.assertEqual(base.version_from_string(""), None)


class TestHelpers(unittest.TestCase):

    def test_placeholder_sizes(self):
        driver = mock.Mock()
        sizes = base.placeholder_sizes(driver)
        self.assertEqual([s.id for s in sizes], ["micro", "small", "medium", "large"])
        self.assertEqual([s.ram for s in sizes], [512, 1024, 2048, 3072])
        self.assertEqual(sizes[0].extra["cores"], 1)

    def test_parse_date_iso(self):
        value = base.parse_date("2014-10-01T12:00:00Z")
        self.assertEqual(value, datetime.datetime(2014, 10, 1, 12, tzinfo=tz.tzutc()))

    def test_parse_date_epoch(self):
        value = base.parse_date(1412164800)
        self.assertEqual(value, datetime.datetime(2014, 10, 1, 12, tzinfo=tz.tzutc()))

    def test_parse_date_empty(self):
        self.assertEqual(base.parse_date(None), None)
        self.assertEqual(base.parse_date(""), None)
        self.assertEqual(base.parse_date("not a date"), None)

    def test_split_ips(self):
        public, private = base.split_ips(["10.0.0.4", "93.184.216.34", None, "192.168.1.1"])
        self.assertEqual(public, ["93.184.216.34"])
        self.assertEqual(private, ["10.0.0.4", "192.168.1.1"])


class TestWaitFor(unittest.TestCase):

    @mock.patch("stratus.compute.base.time")
    def test_returns_result(self, time):
        time.time.return_value = 0
        predicate = mock.Mock(side_effect=[None, None, "done"])
        self.assertEqual(base.wait_for(predicate, 60, interval=5), "done")
        self.assertEqual(time.sleep.call_count, 2)
        time.sleep.assert_called_with(5)

    @mock.patch("stratus.compute.base.time")
    def test_timeout(self, time):
        time.time.side_effect = [0, 30, 61]
        predicate = mock.Mock(return_value=False)
        self.assertRaises(base.OperationTimeout, base.wait_for, predicate, 60)
        self.assertEqual(predicate.call_count, 2)


class TestResponses(unittest.TestCase):

    def _response(self, cls, status):
        response = cls.__new__(cls)
        response.status = status
        response.body = "oops"
        return response

    def test_unauthorized(self):
        for cls in (base.JsonApiResponse, base.XmlApiResponse):
            response = self._response(cls, 401)
            self.assertRaises(InvalidCredsError, response.parse_error)

    def test_error_body(self):
        response = self._response(base.JsonApiResponse, 500)
        self.assertEqual(response.parse_error(), "oops")
        self.assertFalse(response.success())

    def test_success(self):
        for status in (200, 201, 202, 204):
            self.assertTrue(self._response(base.XmlApiResponse, status).success())
