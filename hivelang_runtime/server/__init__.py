"""
HiveLang Runtime Server Package.

This package exposes the capability runtime over HTTP for the bot-execution
service and for integration authoring tools.

Subpackages:
    api: FastAPI route definitions and endpoint logic.
    core: Server constants.
    exception_handlers: Global and compile-error handlers.
    schemas: Pydantic schemas for API request/response validation.
    services: Dependency providers for the integration service.
"""
