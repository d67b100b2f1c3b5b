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
Joyent CloudAPI 6.5 (http://www.joyent.com) driver.
"""

import io
import json
import base64
import logging
import collections

import paramiko

from libcloud.utils.py3 import httplib
from libcloud.utils.py3 import b

from libcloud.common.base import ConnectionUserAndKey
from libcloud.compute.types import NodeState
from libcloud.compute.base import Node, NodeDriver, NodeImage, NodeSize, NodeLocation

from stratus.compute.base import JsonApiResponse, OperatingSystem, OsFamily, LocationScope
from stratus.compute.base import os_family_from_string, parse_date, split_ips
from stratus.compute.providers import Provider

logger = logging.getLogger("stratus.compute.joyent")

API_VERSION = '~6.5'
DEFAULT_REGION = 'us-east-1'

NODE_STATE_MAP = {
    'provisioning': NodeState.PENDING,
    'running': NodeState.RUNNING,
    'stopping': NodeState.PENDING,
    'stopped': NodeState.STOPPED,
    'deleted': NodeState.TERMINATED,
}


Key = collections.namedtuple('Key', ['name', 'fingerprint', 'key', 'created'])


class KeyAndPrivateKey(object):

    """ A key registered with the account, plus the private half that only
    exists locally because stratus generated it. """

    def __init__(self, key, private_key):
        if key is None:
            raise ValueError("key")
        if private_key is None:
            raise ValueError("private_key")
        self.key = key
        self.private_key = private_key

    def __eq__(self, other):
        if not isinstance(other, KeyAndPrivateKey):
            return NotImplemented
        return (self.key, self.private_key) == (other.key, other.private_key)

    def __ne__(self, other):
        result = self.__eq__(other)
        if result is NotImplemented:
            return result
        return not result

    def __hash__(self):
        return hash((self.key, self.private_key))

    def __repr__(self):
        return "<KeyAndPrivateKey key=%r>" % (self.key.name, )


def generate_rsa_key(bits=2048):
    """ Returns ``(public_key, private_key, fingerprint)`` as strings, the
    public key in OpenSSH format and the private key PEM encoded. """
    key = paramiko.RSAKey.generate(bits)
    buf = io.StringIO()
    key.write_private_key(buf)
    public_key = "%s %s" % (key.get_name(), key.get_base64())
    fingerprint = ":".join("%02x" % c for c in bytearray(key.get_fingerprint()))
    return public_key, buf.getvalue(), fingerprint


class JoyentResponse(JsonApiResponse):

    def parse_error(self):
        body = super(JoyentResponse, self).parse_error()
        try:
            return json.loads(body).get('message', body)
        except (ValueError, TypeError, AttributeError):
            return body


class JoyentConnection(ConnectionUserAndKey):

    responseCls = JoyentResponse

    def add_default_headers(self, headers):
        user_b64 = base64.b64encode(b('%s:%s' % (self.user_id, self.key)))
        headers['Authorization'] = 'Basic %s' % (user_b64.decode('utf-8'))
        headers['Accept'] = 'application/json'
        headers['Content-Type'] = 'application/json; charset=UTF-8'
        headers['X-Api-Version'] = API_VERSION
        return headers


class JoyentNodeDriver(NodeDriver):

    type = Provider.JOYENT
    name = 'Joyent'
    website = 'http://www.joyent.com'
    connectionCls = JoyentConnection
    features = {'create_node': ['generates_password']}

    def __init__(self, key, secret, region=DEFAULT_REGION, **kwargs):
        kwargs.setdefault('host', '%s.api.joyentcloud.com' % region)
        super(JoyentNodeDriver, self).__init__(key=key, secret=secret,
                                               region=region, **kwargs)
        self.region = region

    def list_images(self):
        result = self.connection.request('/my/datasets').object
        return [self._to_image(dataset) for dataset in result]

    def list_sizes(self):
        result = self.connection.request('/my/packages').object
        return [self._to_size(package) for package in result]

    def list_locations(self):
        result = self.connection.request('/my/datacenters').object
        locations = []
        for name, url in sorted(result.items()):
            locations.append(NodeLocation(
                id=name, name=name, country='', driver=self,
                extra={'url': url, 'scope': LocationScope.REGION},
                ))
        return locations

    def list_nodes(self):
        result = self.connection.request('/my/machines').object
        return [self._to_node(machine) for machine in result]

    def ex_get_node(self, node_id):
        result = self.connection.request('/my/machines/%s' % node_id).object
        return self._to_node(result)

    def _action(self, node, action):
        result = self.connection.request('/my/machines/%s' % node.id,
                                         params={'action': action},
                                         method='POST')
        return result.status == httplib.ACCEPTED

    def reboot_node(self, node):
        return self._action(node, 'reboot')

    def ex_stop_node(self, node):
        return self._action(node, 'stop')

    def ex_start_node(self, node):
        return self._action(node, 'start')

    def destroy_node(self, node):
        result = self.connection.request('/my/machines/%s' % node.id,
                                         method='DELETE')
        return result.status == httplib.NO_CONTENT

    def ex_list_keys(self):
        result = self.connection.request('/my/keys').object
        return [self._to_key(key) for key in result]

    def ex_import_key(self, name, public_key):
        data = json.dumps({'name': name, 'key': public_key})
        result = self.connection.request('/my/keys', data=data,
                                         method='POST').object
        return self._to_key(result)

    def ex_delete_key(self, name):
        result = self.connection.request('/my/keys/%s' % name,
                                         method='DELETE')
        return result.status == httplib.NO_CONTENT

    def ex_create_key_pair(self, name):
        """ Generate an RSA key pair locally and register the public half
        with the account. """
        public_key, private_key, fingerprint = generate_rsa_key()
        logger.debug("Generated key %s (%s)", name, fingerprint)
        key = self.ex_import_key(name, public_key)
        return KeyAndPrivateKey(key, private_key)

    def create_node(self, name, size, image, ex_generate_key=False,
                    ex_metadata=None):
        key_and_private_key = None
        if ex_generate_key:
            key_and_private_key = self.ex_create_key_pair('stratus-%s' % name)

        payload = {
            'name': name,
            'package': size.name,
            'dataset': image.id,
            }
        for k, v in (ex_metadata or {}).items():
            payload['metadata.%s' % k] = v

        logger.debug("Creating machine %s from %s", name, image.id)
        try:
            result = self.connection.request('/my/machines',
                                             data=json.dumps(payload),
                                             method='POST').object
        except Exception:
            if key_and_private_key:
                logger.warning("Creating machine %s failed, removing key %s",
                               name, key_and_private_key.key.name)
                self.ex_delete_key(key_and_private_key.key.name)
            raise
        node = self._to_node(result)
        if key_and_private_key:
            node.extra['key_and_private_key'] = key_and_private_key
        return node

    def _to_key(self, data):
        return Key(
            name=data['name'],
            fingerprint=data.get('fingerprint'),
            key=data['key'],
            created=parse_date(data.get('created')),
            )

    def _to_node(self, data):
        public_ips, private_ips = split_ips(data.get('ips', []))
        extra = {
            'type': data.get('type'),
            'dataset': data.get('dataset'),
            'package': data.get('package'),
            'memory': data.get('memory'),
            'disk': data.get('disk'),
            'metadata': data.get('metadata', {}),
            'primary_ip': data.get('primaryIp'),
            }
        return Node(id=data['id'], name=data['name'],
                    state=NODE_STATE_MAP.get(data.get('state'), NodeState.UNKNOWN),
                    public_ips=public_ips, private_ips=private_ips,
                    driver=self, created_at=parse_date(data.get('created')),
                    extra=extra)

    def _to_image(self, data):
        os = OperatingSystem(
            family=os_family_from_string(data.get('name')),
            version=data.get('version'),
            description=data.get('description') or data.get('name'),
            arch=None,
            is_64bit='64' in (data.get('name') or ''),
            )
        if os.family == OsFamily.UNRECOGNIZED:
            os = os._replace(family=os_family_from_string(data.get('os')))
        return NodeImage(
            id=data['id'],
            name=data['name'],
            driver=self,
            extra={
                'urn': data.get('urn'),
                'os': data.get('os'),
                'type': data.get('type'),
                'default': data.get('default', False),
                'created': parse_date(data.get('created')),
                'operating_system': os,
                },
            )

    def _to_size(self, data):
        return NodeSize(
            id=data.get('id', data['name']),
            name=data['name'],
            ram=data.get('memory'),
            disk=data.get('disk'),
            bandwidth=None,
            price=None,
            driver=self,
            extra={'vcpus': data.get('vcpus'), 'swap': data.get('swap'),
                   'default': data.get('default', False)},
            )
