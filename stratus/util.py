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

import difflib
import functools
import inspect
import itertools

from stratus import error


_MARKER = object()
_MARKER2 = object()


class memoized(object):
    """
    Decorator. Caches a function's return value each time it is called.
    If called later with the same arguments, the cached value is returned
    (not reevaluated).
    """
    def __init__(self, func):
        self.func = func
        self.cache = {}

    def __call__(self, *args):
        try:
            return self.cache[args]
        except KeyError:
            value = self.func(*args)
            self.cache[args] = value
            return value
        except TypeError:
            # uncachable, e.g. a list argument
            return self.func(*args)

    def __repr__(self):
        return self.func.__doc__

    def __get__(self, obj, objtype):
        return functools.partial(self.__call__, obj)


def _coerce(arg, value, default):
    if isinstance(default, bool):
        if isinstance(value, str):
            return value.strip().lower() in ("1", "true", "yes", "on")
        return bool(value)
    try:
        if isinstance(default, int):
            return int(value)
        if isinstance(default, str):
            return str(value)
    except (TypeError, ValueError):
        raise error.ConfigError("'%s' should be a %s, not '%s'" % (arg, type(default).__name__, value))
    return value


def args_from_config(func, config, ignore=(), kwargs=()):
    """ Marshall the arguments for ``func`` out of a config mapping by
    inspecting its call signature.

    Arguments without a default must be present in ``config``. Arguments
    with a default fall back to it, and when the default is an ``int``,
    ``bool`` or ``str`` the configured value is coerced to match. Names in
    ``kwargs`` are passed through only when they are configured. """
    if inspect.isclass(func):
        func = getattr(func, "__init__")
    spec = inspect.getfullargspec(func)
    args = list(spec.args)
    defaults = spec.defaults

    if args and args[0] == "self":
        args.pop(0)

    len_args = len(args)
    len_defaults = len(defaults) if defaults else 0
    padding = len_args - len_defaults

    defaults = itertools.chain(itertools.repeat(_MARKER, padding), defaults or ())

    config = config or {}

    result = {}
    for arg, default in itertools.chain(zip(args, defaults), zip(kwargs, itertools.repeat(_MARKER2, len(kwargs)))):
        if arg in ignore:
            continue
        if arg not in config:
            if default is _MARKER:
                raise error.MissingArgument("'%s' is required" % arg)
            elif default is _MARKER2:
                continue
            result[arg] = default
        elif default in (_MARKER, _MARKER2) or default is None:
            result[arg] = config[arg]
        else:
            result[arg] = _coerce(arg, config[arg], default)

    return result


def get_driver_from_config(config, get_driver, provider, extra_drivers=None, ignore=("driver", )):
    """ Instantiate the driver a profile describes.

    ``config`` is either a bare driver id or a mapping with a ``driver`` key
    and the driver's arguments. Unknown ids raise ``DriverNotFound`` with the
    closest valid ids as a hint. """
    extra_drivers = extra_drivers or {}

    if isinstance(config, str):
        driver_id = config
        config = None
    else:
        try:
            driver_id = config["driver"]
        except (KeyError, TypeError):
            raise error.ConfigError("A profile must be a driver id or a mapping with a 'driver' key")

    if driver_id in extra_drivers:
        Driver = extra_drivers[driver_id]
    else:
        try:
            Driver = get_driver(getattr(provider, driver_id))
        except AttributeError:
            msg = ["'%s' is not a valid driver" % driver_id]
            all_drivers = list(
                v for v in vars(provider) if not v.startswith("_"))
            all_drivers.extend(extra_drivers.keys())
            all_drivers = sorted(set(all_drivers))
            possible = difflib.get_close_matches(driver_id, all_drivers)
            if possible:
                msg.append("The closest valid drivers are: %s" %
                           "/".join(possible))
            raise error.DriverNotFound('\n'.join(msg))

    kwargs = getattr(Driver, "kwargs", [])
    return Driver(**args_from_config(Driver, config, ignore=ignore, kwargs=kwargs))
