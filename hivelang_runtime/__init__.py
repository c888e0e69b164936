"""HiveLang capability runtime.

This package turns HiveLang integration sources into callable capabilities and
runs them on behalf of bot users with per-user credentials.

High-level architecture
-----------------------

A source goes through three stages before it can be invoked:

- **Extraction**: the source is split into ``@capability name(params)`` units
  and its ``@integration``/``@auth`` manifest header is read.
- **Transpilation**: each body is parsed and rewritten from the
  Python-flavoured surface syntax into the core form (explicit ``await`` on
  HTTP calls, credentials routed through ``context.user``...).
- **Synthesis**: the core form is checked and wrapped as an async
  ``CompiledCapability`` that an AST interpreter runs. Nothing is evaluated
  with ``eval``/``exec``.

Core subpackages
----------------

- ``hivelang_runtime.language``: extractor, lexer, parser, code generator and
  rewrite passes.
- ``hivelang_runtime.engine``: synthesis, the interpreter and the builtins
  capability bodies may use.
- ``hivelang_runtime.sandbox``: the ``http`` object (httpx based) with its
  transport policy and timeouts.
- ``hivelang_runtime.runtime``: the ``Runtime`` facade, the compiled runtime
  cache and the ``IntegrationService`` the bot-execution layer calls.
- ``hivelang_runtime.core``: settings, logging and optional Logfire monitoring.
- ``hivelang_runtime.server``: FastAPI app exposing the service over HTTP.
"""

__version__ = "0.1.0"
