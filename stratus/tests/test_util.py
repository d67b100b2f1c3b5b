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

from stratus import error
from stratus.util import args_from_config, get_driver_from_config, memoized


class Provider(object):
    EXAMPLE = 'example'


class ExampleDriver(object):

    kwargs = ['ex_extra']

    def __init__(self, key, port=80, secure=True, name="example", region=None, **kwargs):
        self.key = key
        self.port = port
        self.secure = secure
        self.name = name
        self.region = region
        self.kwargs = kwargs


def get_driver(driver_id):
    assert driver_id == Provider.EXAMPLE
    return ExampleDriver


class TestArgsFromConfig(unittest.TestCase):

    def test_defaults(self):
        self.assertEqual(args_from_config(ExampleDriver, {"key": "k"}), {
            "key": "k",
            "port": 80,
            "secure": True,
            "name": "example",
            "region": None,
            })

    def test_missing_required(self):
        self.assertRaises(error.MissingArgument, args_from_config, ExampleDriver, {})

    def test_coerce_int(self):
        args = args_from_config(ExampleDriver, {"key": "k", "port": "8080"})
        self.assertEqual(args["port"], 8080)

    def test_coerce_bool(self):
        args = args_from_config(ExampleDriver, {"key": "k", "secure": "no"})
        self.assertEqual(args["secure"], False)
        args = args_from_config(ExampleDriver, {"key": "k", "secure": "Yes"})
        self.assertEqual(args["secure"], True)

    def test_coerce_str(self):
        args = args_from_config(ExampleDriver, {"key": "k", "name": 42})
        self.assertEqual(args["name"], "42")

    def test_coerce_bad_int(self):
        self.assertRaises(error.ConfigError, args_from_config, ExampleDriver, {"key": "k", "port": "http"})

    def test_none_default_passed_through(self):
        args = args_from_config(ExampleDriver, {"key": "k", "region": 3})
        self.assertEqual(args["region"], 3)

    def test_ignore(self):
        args = args_from_config(ExampleDriver, {"key": "k", "driver": "EXAMPLE"}, ignore=("driver", ))
        self.assertTrue("driver" not in args)

    def test_kwargs_only_when_configured(self):
        args = args_from_config(ExampleDriver, {"key": "k"}, kwargs=["ex_extra"])
        self.assertTrue("ex_extra" not in args)
        args = args_from_config(ExampleDriver, {"key": "k", "ex_extra": 1}, kwargs=["ex_extra"])
        self.assertEqual(args["ex_extra"], 1)


class TestGetDriverFromConfig(unittest.TestCase):

    def test_mapping(self):
        driver = get_driver_from_config({"driver": "EXAMPLE", "key": "k", "ex_extra": "x"}, get_driver, Provider)
        self.assertEqual(driver.key, "k")
        self.assertEqual(driver.kwargs, {"ex_extra": "x"})

    def test_bare_id_needs_arguments(self):
        self.assertRaises(error.MissingArgument, get_driver_from_config, "EXAMPLE", get_driver, Provider)

    def test_no_driver_key(self):
        self.assertRaises(error.ConfigError, get_driver_from_config, {"key": "k"}, get_driver, Provider)

    def test_unknown_driver_suggests(self):
        try:
            get_driver_from_config({"driver": "EXAMPEL"}, get_driver, Provider)
        except error.DriverNotFound as e:
            self.assertEqual(e.msg, "'EXAMPEL' is not a valid driver\nThe closest valid drivers are: EXAMPLE")
        else:
            self.fail("DriverNotFound not raised")

    def test_extra_drivers(self):
        driver = get_driver_from_config({"driver": "OTHER", "key": "k"}, get_driver, Provider,
                                        extra_drivers={"OTHER": ExampleDriver})
        self.assertTrue(isinstance(driver, ExampleDriver))


class TestMemoized(unittest.TestCase):

    def test_cached(self):
        calls = []

        @memoized
        def double(x):
            calls.append(x)
            return x * 2

        self.assertEqual(double(2), 4)
        self.assertEqual(double(2), 4)
        self.assertEqual(calls, [2])

    def test_uncachable(self):
        calls = []

        @memoized
        def total(x):
            calls.append(x)
            return sum(x)

        self.assertEqual(total([1, 2]), 3)
        self.assertEqual(total([1, 2]), 3)
        self.assertEqual(len(calls), 2)


class TestErrors(unittest.TestCase):

    def test_str(self):
        self.assertEqual(str(error.ConfigError("bad")), "ConfigError: bad")

    def test_returncodes(self):
        self.assertEqual(error.Error.returncode, 253)
        self.assertEqual(error.ParseError.returncode, 128)
        self.assertEqual(error.ConfigError.returncode, 129)
        self.assertEqual(error.DriverNotFound.returncode, 130)
        self.assertEqual(error.MissingArgument.returncode, 131)
        self.assertEqual(error.TemplateError.returncode, 132)
        self.assertEqual(error.InvalidCredsError.returncode, 133)
        self.assertEqual(error.NoMatchingNode.returncode, 134)
