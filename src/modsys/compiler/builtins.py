"""
Built-in Compilers

- compile_python: wraps module text in a factory that executes it as a
  module body with require/exports/module injected
- compile_json: parses module text and assigns the value as exports
  (no factory phase)
"""

import json
import logging
from typing import TYPE_CHECKING

from ..shared.errors import ParseFault

if TYPE_CHECKING:
    from ..module_system.module_info import Module

logger = logging.getLogger(__name__)


def compile_python(module: "Module") -> None:
    """
    Compile a Python module body into a factory.

    The body sees `require`, `exports`, `module`, `__filename__` and
    `__dirname__`. Assigning `module.exports` replaces the exports value.
    """
    code = compile(module.text, module.filename, "exec")

    def factory(require, exports, module_record, filename, dirname):
        namespace = {
            "__name__": module_record.id,
            "__file__": filename,
            "__filename__": filename,
            "__dirname__": dirname,
            "require": require,
            "exports": exports,
            "module": module_record,
        }
        exec(code, namespace)

    module.factory = factory


def compile_json(module: "Module") -> None:
    """Parse a structured-data module; the parsed value is the exports."""
    try:
        module.exports = json.loads(module.text)
    except json.JSONDecodeError as e:
        raise ParseFault(module.filename, str(e)) from e
