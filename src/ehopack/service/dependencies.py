"""Query client wiring for the service.

The service reads from an ``InMemoryQueryClient`` loaded from
``EHO_DATASET_FILE`` unless a host application overrides
``get_query_client`` (``app.dependency_overrides``) with a real backend.
"""
from __future__ import annotations

import logging
from typing import Optional

from .. import config
from ..store import InMemoryQueryClient, QueryClient, load_dataset_file

logger = logging.getLogger(__name__)

_client: Optional[QueryClient] = None


def get_query_client() -> QueryClient:
    global _client
    if _client is None:
        datasets = {}
        if config.EHO_DATASET_FILE is not None:
            datasets = load_dataset_file(config.EHO_DATASET_FILE)
            logger.info("Loaded %d dataset(s) from %s", len(datasets), config.EHO_DATASET_FILE)
        _client = InMemoryQueryClient(datasets)
    return _client
