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
Parsers for the SOAP responses of the ProfitBricks API.

The payload of every response is one or more unqualified ``<return>``
elements inside ``<S:Body><ns2:operationResponse>``.
"""

from stratus.compute.base import parse_date
from stratus.compute.profitbricks import domain

SOAP_NS = 'http://schemas.xmlsoap.org/soap/envelope/'


def _text(element, tag):
    child = element.find(tag)
    if child is None or child.text is None:
        return None
    return child.text.strip()


def _int(element, tag):
    value = _text(element, tag)
    if value is None or value == '':
        return None
    return int(value)


def _bool(element, tag):
    value = _text(element, tag)
    if value is None:
        return None
    return value.lower() == 'true'


def returns(envelope):
    """ All the ``<return>`` elements of a response envelope """
    body = envelope.find('{%s}Body' % SOAP_NS)
    if body is None or len(body) == 0:
        return []
    return body[0].findall('return')


def fault_string(envelope):
    fault = envelope.find('{%s}Body/{%s}Fault' % (SOAP_NS, SOAP_NS))
    if fault is None:
        return None
    return _text(fault, 'faultstring')


def parse_datacenter_info(element):
    """ Only the direct children of the first ``<return>`` describe the data
    center, the servers and storages nested in it carry fields with the same
    names. """
    return domain.DataCenter(
        id=_text(element, 'dataCenterId'),
        name=_text(element, 'dataCenterName'),
        version=_int(element, 'dataCenterVersion'),
        location=domain.Location.from_id(_text(element, 'location')),
        state=domain.ProvisioningState.from_value(_text(element, 'provisioningState')),
        )


def parse_datacenter_reference(element):
    location = _text(element, 'location')
    return domain.DataCenter(
        id=_text(element, 'dataCenterId'),
        name=_text(element, 'dataCenterName'),
        version=_int(element, 'dataCenterVersion'),
        location=domain.Location.from_id(location) if location else None,
        )


def parse_server(element):
    return domain.Server(
        id=_text(element, 'serverId'),
        name=_text(element, 'serverName'),
        cores=_int(element, 'cores'),
        ram=_int(element, 'ram'),
        internet_access=_bool(element, 'internetAccess'),
        ips=[ip.text.strip() for ip in element.findall('ips') if ip.text],
        provisioning_state=domain.ProvisioningState.from_value(_text(element, 'provisioningState')),
        virtual_machine_state=_text(element, 'virtualMachineState'),
        creation_time=parse_date(_text(element, 'creationTime')),
        last_modification_time=parse_date(_text(element, 'lastModificationTime')),
        os_type=_text(element, 'osType'),
        availability_zone=_text(element, 'availabilityZone'),
        data_center_id=_text(element, 'dataCenterId'),
        )


def parse_image(element):
    return domain.Image(
        id=_text(element, 'imageId'),
        name=_text(element, 'imageName'),
        size=_int(element, 'imageSize'),
        type=_text(element, 'imageType'),
        location=domain.Location.from_id(_text(element, 'location')),
        os_type=_text(element, 'osType'),
        public=_bool(element, 'public'),
        writeable=_bool(element, 'writeable'),
        bootable=_bool(element, 'bootable'),
        )
