"""
Category Seeding Protocol

Runs once per user, when the remote category collection is observed empty,
so that every user ends up with a non-empty category set.

FLOW:
1. Pick the seed set: legacy (localized) if the user already has
   transactions, new-user (non-localized) otherwise
2. Sleep a jittered interval to desynchronize near-simultaneous
   initializations of the same account
3. Re-count the user's categories
4. Still zero -> bulk insert the seed set without client ids; the inserted
   rows (with store-assigned ids) become the category list
5. Non-zero -> another initialization won; re-fetch instead of inserting
6. Insert fails -> serve the legacy set from memory only and raise a
   "please refresh" notice

KNOWN RELAXATION: the jittered re-check narrows the race window, it does
not close it. Two initializations that both pass step 3 before either
insert commits will both insert. A store-level unique key on
(user_id, name, type) turns the loser's insert into a DuplicateError, which
is handled like step 5.
"""

import asyncio
import random
from enum import Enum
from typing import Awaitable, Callable, Optional

from pydantic import BaseModel

from money_ledger.audit.logger import AuditLogger
from money_ledger.models.audit import AuditEventBuilder
from money_ledger.models.defaults import LEGACY_CATEGORIES, NEW_USER_CATEGORIES
from money_ledger.models.ledger import Category
from money_ledger.services.storage.interface import DuplicateError, RecordCollection


class SeedSet(str, Enum):
    LEGACY = "legacy"
    NEW_USER = "new_user"


class SeedOutcome(BaseModel):
    """What the seeding run ended with."""
    categories: tuple[Category, ...]
    seed_set: SeedSet
    inserted: bool = False
    race_lost: bool = False
    failed: bool = False
    error_message: Optional[str] = None


def seed_categories_for(has_transactions: bool) -> tuple[SeedSet, tuple[Category, ...]]:
    """
    Legacy accounts (transactions but no categories) get the set their
    transactions were recorded against; brand-new accounts get the new set.
    """
    if has_transactions:
        return SeedSet.LEGACY, LEGACY_CATEGORIES
    return SeedSet.NEW_USER, NEW_USER_CATEGORIES


class CategorySeeder:
    """
    Seeds a user's empty category collection.

    Args:
        categories: Remote category collection
        jitter_ms: (min, max) desynchronization delay in milliseconds
        sleep: Awaitable sleep, injectable for tests
        rng: Random source for the jitter
    """

    def __init__(
        self,
        categories: RecordCollection,
        jitter_ms: tuple[int, int] = (100, 600),
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        rng: Optional[random.Random] = None,
        audit_logger: Optional[AuditLogger] = None,
    ):
        low, high = jitter_ms
        if high < low:
            raise ValueError("jitter_ms upper bound is below lower bound")
        self._categories = categories
        self._jitter_ms = (low, high)
        self._sleep = sleep
        self._rng = rng or random.Random()
        self._audit_logger = audit_logger or AuditLogger()

    def next_delay(self) -> float:
        """Jittered delay, in seconds."""
        low, high = self._jitter_ms
        return self._rng.uniform(low, high) / 1000

    async def _fetch(self, user_id: str) -> tuple[Category, ...]:
        rows = await self._categories.select(
            {"user_id": user_id}, order_by="created_at", ascending=True,
        )
        return tuple(Category.from_record(row) for row in rows)

    async def seed(self, user_id: str, has_transactions: bool) -> SeedOutcome:
        """
        Run the protocol for `user_id`.

        Count and re-fetch failures propagate; only the insert failure is
        turned into the in-memory fallback.
        """
        seed_set, seed = seed_categories_for(has_transactions)

        await self._sleep(self.next_delay())

        existing = await self._categories.count({"user_id": user_id})
        if existing > 0:
            self._audit_logger.log(AuditEventBuilder.seeding_race_lost(user_id, existing))
            return SeedOutcome(
                categories=await self._fetch(user_id),
                seed_set=seed_set,
                race_lost=True,
            )

        # to_record carries no id, so the store assigns fresh ones
        payload = [category.to_record(user_id) for category in seed]
        try:
            rows = await self._categories.insert(payload)
        except DuplicateError:
            self._audit_logger.log(AuditEventBuilder.seeding_race_lost(user_id, len(seed)))
            return SeedOutcome(
                categories=await self._fetch(user_id),
                seed_set=seed_set,
                race_lost=True,
            )
        except Exception as e:
            self._audit_logger.log(AuditEventBuilder.seeding_failed(user_id, str(e)))
            return SeedOutcome(
                categories=LEGACY_CATEGORIES,
                seed_set=SeedSet.LEGACY,
                failed=True,
                error_message=str(e),
            )

        categories = tuple(Category.from_record(row) for row in rows)
        self._audit_logger.log(
            AuditEventBuilder.categories_seeded(user_id, seed_set.value, len(categories))
        )
        return SeedOutcome(
            categories=categories,
            seed_set=seed_set,
            inserted=True,
        )
