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
Docker (http://docker.io) driver.

Containers are nodes. Images are the images the daemon already has, and as
the remote API has no notion of hardware the sizes are placeholders.
"""

# https://docs.docker.com/reference/api/docker_remote_api_v1.15/

import io
import json
import base64
import logging
import tarfile
import collections

from libcloud.utils.py3 import httplib
from libcloud.utils.py3 import b

from libcloud.common.base import ConnectionUserAndKey
from libcloud.compute.types import NodeState
from libcloud.compute.base import Node, NodeDriver, NodeImage, NodeAuthPassword

from stratus.compute.base import JsonApiResponse, OperatingSystem
from stratus.compute.base import os_family_from_string, version_from_string
from stratus.compute.base import parse_date, placeholder_sizes
from stratus.compute.providers import Provider

logger = logging.getLogger("stratus.compute.docker")

DEFAULT_COMMAND = ["/usr/sbin/sshd", "-D"]
DEFAULT_BINDS = ["/var/lib/docker:/root"]
DEFAULT_LOGIN_USER = "root"
DEFAULT_LOGIN_PASSWORD = "password"

Version = collections.namedtuple(
    'Version', ['arch', 'git_commit', 'go_version', 'kernel_version', 'os', 'version'])


class _QueryOptions(object):

    """ Optional query string arguments of a remote API call. Options left
    as ``None`` are not sent at all. """

    params = ()

    def __init__(self, **kwargs):
        for attr, key in self.params:
            setattr(self, attr, kwargs.pop(attr, None))
        if kwargs:
            raise TypeError("Unexpected options: %s" % ", ".join(sorted(kwargs)))

    def as_params(self):
        result = {}
        for attr, key in self.params:
            value = getattr(self, attr)
            if value is None:
                continue
            if isinstance(value, bool):
                value = "true" if value else "false"
            result[key] = str(value)
        return result


class KillOptions(_QueryOptions):
    params = (('signal', 'signal'), )


class AttachOptions(_QueryOptions):
    params = (
        ('stream', 'stream'),
        ('logs', 'logs'),
        ('stdin', 'stdin'),
        ('stdout', 'stdout'),
        ('stderr', 'stderr'),
        )


class ListContainerOptions(_QueryOptions):
    params = (
        ('all', 'all'),
        ('limit', 'limit'),
        ('since', 'since'),
        ('before', 'before'),
        )


class CreateImageOptions(_QueryOptions):
    params = (
        ('from_image', 'fromImage'),
        ('from_src', 'fromSrc'),
        ('repo', 'repo'),
        ('tag', 'tag'),
        ('registry', 'registry'),
        )


class CommitOptions(_QueryOptions):
    params = (
        ('repo', 'repo'),
        ('tag', 'tag'),
        ('message', 'm'),
        ('author', 'author'),
        ('run', 'run'),
        )


class BuildOptions(_QueryOptions):
    params = (
        ('tag', 't'),
        ('quiet', 'q'),
        ('nocache', 'nocache'),
        )


def container_config(image, command=None, hostname=None, user=None, memory=None,
                     memory_swap=None, attach_stdin=False, attach_stdout=True,
                     attach_stderr=True, exposed_ports=(), tty=False,
                     open_stdin=False, stdin_once=False, env=None, dns=None,
                     volumes=None, volumes_from=None, working_dir=""):
    """ The body of ``POST /containers/create`` """
    return {
        'Hostname': hostname or "",
        'User': user or "",
        'Memory': memory or 0,
        'MemorySwap': memory_swap or 0,
        'AttachStdin': attach_stdin,
        'AttachStdout': attach_stdout,
        'AttachStderr': attach_stderr,
        'ExposedPorts': dict(("%d/tcp" % port, {}) for port in exposed_ports),
        'Tty': tty,
        'OpenStdin': open_stdin,
        'StdinOnce': stdin_once,
        'Env': env,
        'Cmd': command if command is not None else list(DEFAULT_COMMAND),
        'Dns': dns,
        'Image': image,
        'Volumes': volumes if volumes is not None else {"/root": {}},
        'VolumesFrom': volumes_from or "",
        'WorkingDir': working_dir,
        }


def host_config(binds=None, privileged=True, publish_all_ports=True,
                port_bindings=None, links=None, container_id_file=None):
    """ The body of ``POST /containers/(id)/start`` """
    return {
        'ContainerIDFile': container_id_file or "",
        'Binds': binds if binds is not None else list(DEFAULT_BINDS),
        'Privileged': privileged,
        'PortBindings': port_bindings or {},
        'Links': links,
        'PublishAllPorts': publish_all_ports,
        }


def build_context(dockerfile, files=None):
    """ Tar up a Dockerfile and any files it ADDs, ready to POST to /build.

    ``files`` maps archive names to their contents. """
    buf = io.BytesIO()
    with tarfile.open(fileobj=buf, mode="w") as tar:
        members = [("Dockerfile", dockerfile)]
        members.extend(sorted((files or {}).items()))
        for name, contents in members:
            data = b(contents)
            info = tarfile.TarInfo(name=name)
            info.size = len(data)
            tar.addfile(info, io.BytesIO(data))
    return buf.getvalue()


class DockerResponse(JsonApiResponse):

    def parse_body(self):
        # /images/create, /build and /attach stream plain text
        content_type = self.headers.get('content-type', '')
        if 'json' not in content_type:
            return self.body
        return super(DockerResponse, self).parse_body()


class DockerConnection(ConnectionUserAndKey):

    responseCls = DockerResponse

    def add_default_headers(self, headers):
        if self.user_id and self.key:
            user_b64 = base64.b64encode(b('%s:%s' % (self.user_id, self.key)))
            headers['Authorization'] = 'Basic %s' % (user_b64.decode('utf-8'))
        headers.setdefault('Content-Type', 'application/json')
        return headers


class DockerNodeDriver(NodeDriver):

    type = Provider.DOCKER
    name = 'Docker'
    website = 'http://docker.io'
    connectionCls = DockerConnection
    features = {'create_node': ['password']}

    def __init__(self, key='', secret='', secure=False, host='localhost',
                 port=2375, **kwargs):
        """
        ``key`` and ``secret`` are only needed when the daemon sits behind
        a proxy doing basic auth.
        """
        super(DockerNodeDriver, self).__init__(key=key, secret=secret,
                                               secure=secure, host=host,
                                               port=port, **kwargs)

    def ex_version(self):
        result = self.connection.request('/version').object
        return Version(
            arch=result.get('Arch'),
            git_commit=result.get('GitCommit'),
            go_version=result.get('GoVersion'),
            kernel_version=result.get('KernelVersion'),
            os=result.get('Os'),
            version=result.get('Version'),
            )

    def ex_info(self):
        return self.connection.request('/info').object

    def list_images(self):
        result = self.connection.request('/images/json',
                                         params={'all': 'true'}).object
        return [self._to_image(image) for image in result]

    def list_sizes(self):
        return placeholder_sizes(self)

    def list_locations(self):
        return []

    def list_nodes(self, ex_options=None):
        options = ex_options or ListContainerOptions()
        result = self.connection.request('/containers/json',
                                         params=options.as_params()).object
        return [self._to_node(container) for container in result]

    def ex_get_node(self, node_id):
        result = self.connection.request('/containers/%s/json' % node_id).object
        return self._to_node(result)

    def reboot_node(self, node):
        return self.ex_resume_node(node)

    def destroy_node(self, node):
        self.ex_suspend_node(node)
        result = self.connection.request('/containers/%s' % node.id,
                                         params={'v': 'true'},
                                         method='DELETE')
        return result.status == httplib.NO_CONTENT

    def ex_resume_node(self, node, ex_host_config=None):
        data = json.dumps(ex_host_config) if ex_host_config is not None else None
        result = self.connection.request('/containers/%s/start' % node.id,
                                         data=data, method='POST')
        return result.status == httplib.NO_CONTENT

    def ex_suspend_node(self, node):
        result = self.connection.request('/containers/%s/stop' % node.id,
                                         method='POST')
        return result.status == httplib.NO_CONTENT

    def ex_kill_container(self, node, ex_options=None):
        options = ex_options or KillOptions()
        result = self.connection.request('/containers/%s/kill' % node.id,
                                         params=options.as_params(),
                                         method='POST')
        return result.status == httplib.NO_CONTENT

    def ex_attach_container(self, node, ex_options=None):
        options = ex_options or AttachOptions(logs=True, stdout=True, stderr=True)
        return self.connection.request('/containers/%s/attach' % node.id,
                                       params=options.as_params(),
                                       method='POST').object

    def ex_commit_container(self, node, ex_options=None):
        """ Snapshot a container into a new image, returned as a
        ``NodeImage``. """
        params = {'container': node.id}
        params.update((ex_options or CommitOptions()).as_params())
        result = self.connection.request('/commit', params=params,
                                         method='POST').object
        name = params.get('repo', result['Id'])
        if 'tag' in params:
            name = "%s:%s" % (name, params['tag'])
        return NodeImage(id=result['Id'], name=name, driver=self)

    def ex_create_image(self, ex_options):
        """ Pull or import an image. Returns the progress log the daemon
        streams back. """
        return self.connection.request('/images/create',
                                       params=ex_options.as_params(),
                                       method='POST').object

    def ex_delete_image(self, image):
        self.connection.request('/images/%s' % image.id, method='DELETE')
        return True

    def ex_build_image(self, dockerfile, files=None, ex_options=None):
        options = ex_options or BuildOptions()
        return self.connection.request('/build',
                                       params=options.as_params(),
                                       data=build_context(dockerfile, files),
                                       headers={'Content-Type': 'application/tar'},
                                       method='POST').object

    def create_node(self, name, size, image, auth=None, ex_inbound_ports=None,
                    ex_binds=None, ex_login_user=DEFAULT_LOGIN_USER,
                    ex_command=None, ex_environment=None):
        """
        Create and start a container running sshd.

        The container publishes all of its ports so the login port can be
        read back out of the inspected container.
        """
        password = DEFAULT_LOGIN_PASSWORD
        if isinstance(auth, NodeAuthPassword):
            password = auth.password

        inbound_ports = ex_inbound_ports or [22]
        config = container_config(
            image=image.id,
            command=ex_command,
            memory=size.ram * 1024 * 1024 if size and size.ram else None,
            exposed_ports=inbound_ports,
            env=["%s=%s" % pair for pair in sorted((ex_environment or {}).items())] or None,
            )

        logger.debug("Creating container %s from %s", name, image.id)
        result = self.connection.request('/containers/create',
                                         params={'name': name},
                                         data=json.dumps(config),
                                         method='POST').object
        container_id = result['Id']
        logger.debug("Created container %s", container_id)

        self.connection.request('/containers/%s/start' % container_id,
                                data=json.dumps(host_config(binds=ex_binds)),
                                method='POST')

        node = self.ex_get_node(container_id)
        node.extra['login_user'] = ex_login_user
        node.extra['password'] = password
        return node

    def _get_login_port(self, container):
        settings = container.get('NetworkSettings') or {}
        bindings = (settings.get('Ports') or {}).get('22/tcp')
        if bindings:
            return int(bindings[0]['HostPort'])
        for port in container.get('Ports') or []:
            if port.get('PrivatePort') == 22 and port.get('PublicPort'):
                return int(port['PublicPort'])
        return None

    def _to_node(self, container):
        name = container.get('Name')
        if not name and container.get('Names'):
            name = container['Names'][0]
        name = (name or container['Id']).lstrip('/')

        status = container.get('Status')
        if status is not None:
            state = NodeState.RUNNING if 'Up' in status else NodeState.SUSPENDED
        else:
            running = (container.get('State') or {}).get('Running', False)
            state = NodeState.RUNNING if running else NodeState.SUSPENDED

        private_ips = []
        settings = container.get('NetworkSettings')
        if settings and settings.get('IPAddress'):
            private_ips.append(settings['IPAddress'])

        config = container.get('Config') or {}
        extra = {
            'status': status,
            'image': container.get('Image'),
            'command': container.get('Command') or config.get('Cmd'),
            'ports': container.get('Ports'),
            'login_port': self._get_login_port(container),
            'hostname': config.get('Hostname'),
            }

        return Node(id=container['Id'], name=name, state=state,
                    public_ips=[self.connection.host], private_ips=private_ips,
                    driver=self, created_at=parse_date(container.get('Created')),
                    extra=extra)

    def _to_image(self, image):
        tags = [t for t in image.get('RepoTags') or [] if t != '<none>:<none>']
        name = tags[0] if tags else image['Id']
        os = OperatingSystem(
            family=os_family_from_string(name),
            version=version_from_string(name.partition(':')[2]),
            description=name,
            arch=image.get('Architecture'),
            is_64bit=image.get('Architecture', 'amd64') in ('amd64', 'x86_64'),
            )
        return NodeImage(
            id=image['Id'],
            name=name,
            driver=self,
            extra={
                'repo_tags': tags,
                'parent': image.get('Parent', image.get('ParentId')),
                'created': parse_date(image.get('Created')),
                'size': image.get('Size'),
                'virtual_size': image.get('VirtualSize'),
                'architecture': image.get('Architecture'),
                'os': image.get('Os'),
                'operating_system': os,
                },
            )
