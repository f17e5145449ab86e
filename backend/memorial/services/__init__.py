"""Service layer packages.

Import from the concrete modules (``memorial.services.authentication.service``,
``memorial.services._shared.ports``, ...). Keep this module import-free:
:mod:`memorial.models` depends on service-level values.
"""
