"""BaseService: shared foundation for acctgraph services.

Every service receives a :class:`Registry` at construction time and owns
its transaction boundaries via ``self._registry.relationships.transaction()``.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from acctgraph.domain.errors import GraphError
from acctgraph.services.result import ServiceError, ServiceResult

if TYPE_CHECKING:
    from acctgraph.infrastructure.registry import Registry

logger = logging.getLogger(__name__)


class BaseService:
    """Base for service-layer classes.

    Usage::

        class RelationshipService(BaseService):
            def add_relationship(self, ...) -> ServiceResult:
                try:
                    with self._registry.relationships.transaction() as txn:
                        ...
                except GraphError as exc:
                    return self._failure("add_relationship", exc)
    """

    def __init__(self, registry: Registry) -> None:
        self._registry = registry

    @property
    def registry(self) -> Registry:
        return self._registry

    def _actor(self, actor_id: str | None) -> str:
        return actor_id or self._registry.settings.audit.default_actor

    @staticmethod
    def _failure(op: str, exc: GraphError) -> ServiceResult:
        """Convert a domain exception into a failed result, keeping code and detail."""
        logger.debug("%s failed: %s %s", op, exc.code, exc.message)
        return ServiceResult(
            ok=False,
            op=op,
            error=ServiceError(code=exc.code, message=exc.message, detail=dict(exc.detail)),
        )
