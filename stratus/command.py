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

""" Provides command-driven input to stratus, using cmd.Cmd """

import cmd
import optparse
import logging

from libcloud.common.types import LibcloudError
from libcloud.common.types import InvalidCredsError as LibcloudInvalidCredsError

from stratus import error
from stratus import __version__
from stratus.config import Config

logger = logging.getLogger("stratus.command")


class OptionParsingCmd(cmd.Cmd):

    identchars = cmd.Cmd.identchars + "-"

    def parser(self):
        p = optparse.OptionParser(usage="")
        p.remove_option("-h")
        return p

    def onecmd(self, line):
        """Interpret the argument as though it had been typed in response
        to the prompt.

        Commands are dispatched to ``do_<cmd>(opts, args)`` after the
        arguments have been through the parser that ``opts_<cmd>`` sets up.
        Dashes in a command name are looked up as underscores, so
        ``list-nodes`` runs ``do_list_nodes``.

        """
        cmd, arg, line = self.parseline(line)
        if not line:
            return self.emptyline()
        if cmd is None:
            return self.default(line)
        self.lastcmd = line
        if line == 'EOF':
            self.lastcmd = ''
        if cmd == '':
            return self.default(line)

        name = cmd.replace("-", "_")
        try:
            func = getattr(self, 'do_' + name)
        except AttributeError:
            return self.default(line)
        parser = self.parser()
        optparse_func = getattr(self, 'opts_' + name, lambda x: x)
        optparse_func(parser)
        try:
            opts, args = parser.parse_args(arg.split())
        except SystemExit as e:
            # optparse has already printed the usage error
            return e.code

        try:
            return func(opts, args)
        except error.Error as e:
            if getattr(self, "debug", False):
                logger.exception("'%s' failed", line)
            print(str(e))
            return e.returncode
        except LibcloudInvalidCredsError as e:
            print("InvalidCredsError: %s" % (e.value, ))
            return error.InvalidCredsError.returncode
        except LibcloudError as e:
            if getattr(self, "debug", False):
                logger.exception("'%s' failed", line)
            print("%s: %s" % (e.__class__.__name__, e.value))
            return error.Error.returncode
        except KeyboardInterrupt:
            print("^C")

    def default(self, line):
        print("Unknown command '%s'" % line.split()[0])
        return error.Error.returncode

    def postcmd(self, stop, line):
        """Hook method executed just after a command dispatch is finished."""
        return False

    def cmdloop(self):
        try:
            return cmd.Cmd.cmdloop(self)
        except KeyboardInterrupt:
            print("\n%sexit" % self.prompt)

    def aligned_docstring(self, arg):
        """ Return a docstring for a function, aligned properly to the left """
        try:
            doc = getattr(self, 'do_' + arg.replace("-", "_")).__doc__
        except AttributeError:
            return self.nohelp % (arg,)
        if doc:
            return "\n".join([x.strip() for x in str(doc).splitlines()])
        return self.nohelp % (arg,)

    def do_help(self, opts, args):
        arg = " ".join(args)
        if arg:
            print(self.aligned_docstring(arg))
            parser = self.parser()
            optparse_func = getattr(self, 'opts_' + arg.replace("-", "_"), lambda x: x)
            optparse_func(parser)
            parser.print_help()
            return

        cmds_doc = []
        cmds_undoc = []
        for name in sorted(set(self.get_names())):
            if not name.startswith('do_') or name == 'do_EOF':
                continue
            command = name[3:].replace("_", "-")
            if getattr(self, name).__doc__:
                cmds_doc.append(command)
            else:
                cmds_undoc.append(command)
        self.stdout.write("%s\n" % str(self.doc_leader))
        self.print_topics(self.doc_header, cmds_doc, 15, 80)
        self.print_topics(self.undoc_header, cmds_undoc, 15, 80)

    def simple_help(self, command):
        self.do_help((), (command,))


class StratusCmd(OptionParsingCmd):

    prompt = "stratus> "

    def __init__(self, config=None, debug=False):
        """ Global options are provided on the command line, before the
        command """
        cmd.Cmd.__init__(self)
        self.config = config if isinstance(config, Config) else Config(config)
        self.debug = debug

    def preloop(self):
        print("stratus %s" % __version__)
        print("")

    def _get_driver(self, command, args, count):
        if len(args) != count:
            self.simple_help(command)
            return None
        return self.config.get_driver(args[0])

    def _get_node(self, driver, node_id):
        for node in driver.list_nodes():
            if node.id == node_id:
                return node
        raise error.NoMatchingNode("There is no node '%s' in %s" % (node_id, driver.name))

    def do_profiles(self, opts, args):
        """
        usage: profiles
        List the profiles in the configuration file.
        """
        for name, profile in sorted(self.config.profiles.items()):
            driver = profile.get("driver") if isinstance(profile, dict) else profile
            print("%-24s %s" % (name, driver))
        return 0

    def do_list_nodes(self, opts, args):
        """
        usage: list-nodes <profile>
        List the nodes the profile can see.
        """
        driver = self._get_driver("list-nodes", args, 1)
        if driver is None:
            return 1
        for node in driver.list_nodes():
            print("%-40s %-24s %-10s %s" % (
                node.id, node.name, node.state, ", ".join(node.public_ips or [])))
        return 0

    def do_list_images(self, opts, args):
        """
        usage: list-images <profile>
        List the images the profile can create nodes from.
        """
        driver = self._get_driver("list-images", args, 1)
        if driver is None:
            return 1
        for image in driver.list_images():
            print("%-40s %s" % (image.id, image.name))
        return 0

    def do_list_sizes(self, opts, args):
        """
        usage: list-sizes <profile>
        List the sizes the profile can create nodes with.
        """
        driver = self._get_driver("list-sizes", args, 1)
        if driver is None:
            return 1
        for size in driver.list_sizes():
            print("%-24s %-24s %8s MB" % (size.id, size.name, size.ram))
        return 0

    def do_list_locations(self, opts, args):
        """
        usage: list-locations <profile>
        List the locations the profile can create nodes in.
        """
        driver = self._get_driver("list-locations", args, 1)
        if driver is None:
            return 1
        for location in driver.list_locations():
            print("%-24s %-32s %s" % (location.id, location.name, location.country))
        return 0

    def do_reboot(self, opts, args):
        """
        usage: reboot <profile> <node-id>
        Reboot a node.
        """
        driver = self._get_driver("reboot", args, 2)
        if driver is None:
            return 1
        node = self._get_node(driver, args[1])
        if not driver.reboot_node(node):
            print("%s did not reboot" % node.id)
            return 1
        return 0

    def do_destroy(self, opts, args):
        """
        usage: destroy <profile> <node-id>
        Destroy a node. This cannot be undone.
        """
        driver = self._get_driver("destroy", args, 2)
        if driver is None:
            return 1
        node = self._get_node(driver, args[1])
        if not driver.destroy_node(node):
            print("%s was not destroyed" % node.id)
            return 1
        return 0

    def do_exit(self, opts=None, args=None):
        """ Exit stratus """
        raise SystemExit

    def do_EOF(self, opts, args):
        """ Exit stratus """
        print("")
        self.do_exit()
