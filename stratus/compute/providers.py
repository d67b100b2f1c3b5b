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
The drivers stratus provides, keyed the same way libcloud keys its own.
"""

from libcloud.common.providers import get_driver as _get_provider_driver
from libcloud.common.providers import set_driver as _set_provider_driver


class Provider(object):
    AZURE = 'azure'
    DOCKER = 'docker'
    VCLOUD = 'vcloud'
    CLOUDSIGMA = 'cloudsigma'
    JOYENT = 'joyent'
    PROFITBRICKS = 'profitbricks'
    XSTREAM = 'xstream'


DRIVERS = {
    Provider.AZURE:
    ('stratus.compute.azure.driver', 'AzureNodeDriver'),
    Provider.DOCKER:
    ('stratus.compute.docker', 'DockerNodeDriver'),
    Provider.VCLOUD:
    ('stratus.compute.vcloud.driver', 'VCloudNodeDriver'),
    Provider.CLOUDSIGMA:
    ('stratus.compute.cloudsigma', 'CloudSigmaNodeDriver'),
    Provider.JOYENT:
    ('stratus.compute.joyent', 'JoyentNodeDriver'),
    Provider.PROFITBRICKS:
    ('stratus.compute.profitbricks.driver', 'ProfitBricksNodeDriver'),
    Provider.XSTREAM:
    ('stratus.compute.xstream', 'XStreamNodeDriver'),
}


def get_driver(provider):
    return _get_provider_driver(DRIVERS, provider)


def set_driver(provider, module, klass):
    return _set_provider_driver(DRIVERS, provider, module, klass)
