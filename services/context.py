# services/context.py
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Optional

from api_client import TeamMemberApi
from config import Settings
from db import SqlTeamBackend
from services.membership_store import MembershipStore
from services.pending import PendingOverlay
from services.transfer import TransferCoordinator
from utils.allocation import AllocationAggregator, AllocationFilter

logger = logging.getLogger(__name__)


def make_backend(settings: Settings):
    """REST client when an API URL is configured, otherwise the SQL backend."""
    api = TeamMemberApi.from_settings(settings)
    if api is not None:
        logger.info("Using SprintSync API at %s", api.base_url)
        return api
    logger.info("Using database backend")
    return SqlTeamBackend.from_url(settings.database_url)


@dataclass
class AllocationContext:
    """Everything one signed-in session needs. Created at sign-in, closed at logout."""

    settings: Settings
    backend: object
    store: MembershipStore
    coordinator: TransferCoordinator
    aggregator: AllocationAggregator
    current_user_id: Optional[str] = None
    filters: AllocationFilter = field(default_factory=AllocationFilter)
    closed: bool = False

    @classmethod
    def start(cls, settings: Settings, current_user_id: Optional[str] = None,
              backend=None) -> "AllocationContext":
        backend = backend if backend is not None else make_backend(settings)
        store = MembershipStore(backend, PendingOverlay())
        return cls(
            settings=settings,
            backend=backend,
            store=store,
            coordinator=TransferCoordinator(store, backend, settings.capacity_limits),
            aggregator=AllocationAggregator(store, backend),
            current_user_id=current_user_id,
        )

    @property
    def overlay(self) -> PendingOverlay:
        return self.store.overlay

    def close(self) -> None:
        if self.closed:
            return
        self.store.close()
        self.filters = AllocationFilter()
        self.closed = True
        logger.info("Closed session for user %s", self.current_user_id)
