"""HiveLang source handling.

Everything here is pure text processing; nothing executes.

- ``extractor``: split an integration source into ``CapabilityUnit`` blocks and
  read its ``@key value`` manifest header.
- ``lexer`` / ``parser`` / ``nodes``: tokenize and parse a capability body into
  a frozen syntax tree. The parser accepts the Python-flavoured surface syntax
  and the core form alike.
- ``transpiler``: apply the rewrite passes (interpolation, keyword arguments,
  credential routing, ``await`` insertion, operator spelling,
  comprehensions) and render the core form with ``codegen``.
"""

from .errors import HiveSyntaxError
from .extractor import CapabilityUnit, IntegrationManifest, extract, extract_manifest
from .parser import parse
from .transpiler import rewrite, transpile

__all__ = [
    "CapabilityUnit",
    "HiveSyntaxError",
    "IntegrationManifest",
    "extract",
    "extract_manifest",
    "parse",
    "rewrite",
    "transpile",
]
