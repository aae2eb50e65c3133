"""Domain initialization and configuration."""

import structlog
from protean.domain import Domain

from marketplace.utils.logging import configure_logging

configure_logging()

logger = structlog.get_logger(__name__)

# Domain Composition Root
marketplace = Domain(name="marketplace")
