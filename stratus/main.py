# Copyright 2011-2014 Isotoma Limited
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

usage = """usage: %prog [options] [command]
when run without any commands stratus drops to a command prompt.
for more information on a command:
    %prog help [command]
"""


def _main(argv):
    # We do the imports here so that Ctrl+C doesn't show any ugly traceback
    import sys
    import optparse
    import logging
    import atexit

    from stratus import __version__
    from stratus import command

    parser = optparse.OptionParser(version="stratus %s" % __version__, usage=usage)
    parser.disable_interspersed_args()
    parser.add_option("-d", "--debug", default=False, action="store_true",
                      help="switch all logging to maximum, and write out to the console")
    parser.add_option("-C", "--config", default=None,
                      action="store", help="Path to the profiles file")
    opts, args = parser.parse_args(argv or sys.argv[1:])

    logging.basicConfig(
        format="%(asctime)s %(name)s %(levelname)s %(message)s")
    if opts.debug:
        root = logging.getLogger()
        root.setLevel(logging.DEBUG)

    logging.getLogger("paramiko.transport").setLevel(logging.CRITICAL)

    atexit.register(logging.shutdown)

    com = command.StratusCmd(config=opts.config, debug=opts.debug)

    if args:
        sys.exit(com.onecmd(" ".join(args)) or 0)
    else:
        com.cmdloop()


def main(argv=None):
    try:
        _main(argv)
    except KeyboardInterrupt:
        print("")


if __name__ == "__main__":
    main()
