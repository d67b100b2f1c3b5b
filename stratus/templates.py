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

""" Rendering of the XML and SOAP request bodies that ship with stratus. """

from jinja2 import Environment, PackageLoader, StrictUndefined, select_autoescape
from jinja2.exceptions import UndefinedError, TemplateSyntaxError, TemplateNotFound

from stratus import error
from stratus.util import memoized


@memoized
def get_template_environment():
    """
    Sets up the standard request body environment

    In particular stratus has these requirements:

      * Templates are loaded from the stratus package, never from disk
      * Values are XML escaped, bodies are always XML
      * Undefined variables are an error rather than an empty string

    """
    return Environment(
        loader=PackageLoader("stratus", "templates"),
        autoescape=select_autoescape(["xml"], default_for_string=True),
        undefined=StrictUndefined,
        trim_blocks=True,
        lstrip_blocks=True,
        )


def _call_get(name):
    env = get_template_environment()
    try:
        return env.get_template(name)
    except TemplateSyntaxError as e:
        raise error.ParseError("'%s' at line %d: %s" % (e.filename or e.name, e.lineno, e.message))
    except TemplateNotFound as e:
        raise error.TemplateError("There is no request template called '%s'" % e.name)


def _call_render(template, arguments):
    try:
        return template.render(**arguments)
    except UndefinedError as e:
        raise error.MissingArgument("%s (while rendering '%s')" % (e, template.name))
    except error.Error:
        raise
    except Exception as e:
        raise error.TemplateError("The template engine was unable to fill in '%s' and reported: '%s'" % (template.name, e))


def render_template(template_name, **arguments):
    """
    Render one of the packaged request templates, e.g.
    ``render_template("azure/hosted_service.xml", name="web", ...)``.

    Template exceptions will be mapped to stratus exceptions.
    """
    template = _call_get(template_name)
    return _call_render(template, arguments)
