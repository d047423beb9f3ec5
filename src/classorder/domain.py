"""Classroom ordering bounded context.

Holds the per-student orders, the singleton system settings and the
identities that act on them. Persistence is delegated to a shared remote
store through the synchronization layer in ``classorder.sync``.
"""

import structlog
from protean.domain import Domain

from classorder.utils.logging import configure_logging

configure_logging()

classorder = Domain(name="classorder")

logger = structlog.get_logger(__name__)
