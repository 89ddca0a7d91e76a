"""Cache Invalidator — deletes the planned key set after a mutation commits.

Invariants:
    - Called only after the authoritative transaction committed
    - Deletes go through CacheStore.delete_many (batched multi-key DEL); keys it reports
      as not deleted are logged, never raised, so a cache outage cannot fail a committed
      mutation
    - Returns the planned keys (for logging and tests), whether or not each delete landed
"""

import logging

from gigboard.core.cache_keys import PaginationGrid
from gigboard.core.invalidation_plan import MutationContext, MutationKind, plan_invalidation
from gigboard.core.repository_protocols import CacheStore

logger = logging.getLogger(__name__)


class CacheInvalidator:
    def __init__(self, store: CacheStore, grid: PaginationGrid):
        self.store = store
        self.grid = grid

    async def invalidate(
        self,
        kind: MutationKind,
        *contexts: MutationContext,
    ) -> list[str]:
        keys = plan_invalidation(kind, contexts, self.grid)
        failed = await self.store.delete_many(keys)
        if failed:
            logger.warning(
                f"{len(failed)} of {len(keys)} cache keys survived {kind.value}",
                extra={"mutation": kind.value, "cache_key": failed[0]},
            )
        logger.info(
            f"Invalidated {len(keys) - len(failed)} cache keys after {kind.value}",
            extra={"mutation": kind.value, "key_count": len(keys), "failed": len(failed)},
        )
        return keys
