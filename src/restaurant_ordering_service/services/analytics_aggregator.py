"""Admin dashboard reports computed from payments and menu items."""

import logging
import time

from fastapi.concurrency import run_in_threadpool

from restaurant_ordering_service.models.analytics_models import CategoryStats, OverviewStats
from restaurant_ordering_service.observability.decorators import traced
from restaurant_ordering_service.observability.metrics import record_report_duration
from restaurant_ordering_service.store.pipeline import Group, Lookup, Project, Sort, Stage, Sum, Unwind
from restaurant_ordering_service.store.resource_store import MENU, PAYMENTS, ResourceStore

logger = logging.getLogger(__name__)

# One row per (payment, menu item id); ids without a menu item are dropped by the
# second unwind, so deleted items never reach the grouping.
CATEGORY_BREAKDOWN_PIPELINE: list[Stage] = [
    Unwind("menu_item_ids"),
    Lookup(
        from_collection=MENU,
        local_field="menu_item_ids",
        foreign_field="id",
        as_field="menu_item",
    ),
    Unwind("menu_item"),
    Group(
        by="menu_item.category",
        accumulators={"quantity": Sum(), "revenue": Sum("menu_item.price")},
    ),
    Project({"category": "key", "quantity": "quantity", "revenue": "revenue"}),
    Sort("category"),
]

TOTAL_REVENUE_PIPELINE: list[Stage] = [
    Group(by=None, accumulators={"revenue": Sum("price")}),
]


class AnalyticsAggregator:
    """Computes dashboard reports on demand. Nothing is cached.

    The overview counts every payment, while the category breakdown only sees menu
    items that still exist, so the two disagree once menu items are deleted.
    """

    def __init__(self, store: ResourceStore) -> None:
        self.store = store

    @traced("overview_stats")
    async def overview(self) -> OverviewStats:
        """Approximate user, menu item and order counts plus total revenue."""
        started = time.perf_counter()
        stats = await run_in_threadpool(self._overview)
        record_report_duration("overview", time.perf_counter() - started)
        return stats

    def _overview(self) -> OverviewStats:
        rows = self.store.aggregate(PAYMENTS, TOTAL_REVENUE_PIPELINE)
        revenue = rows[0]["revenue"] if rows else 0

        return OverviewStats(
            users=self.store.users.estimated_count(),
            menu_items=self.store.menu.estimated_count(),
            orders=self.store.payments.estimated_count(),
            revenue=float(revenue),
        )

    @traced("category_breakdown")
    async def category_breakdown(self) -> list[CategoryStats]:
        """Units sold and revenue per menu category, sorted by category.

        Categories without any purchased item are omitted.
        """
        started = time.perf_counter()
        rows = await run_in_threadpool(
            self.store.aggregate, PAYMENTS, CATEGORY_BREAKDOWN_PIPELINE
        )
        record_report_duration("category_breakdown", time.perf_counter() - started)

        logger.debug(f"Category breakdown produced {len(rows)} categories")
        return [
            CategoryStats(
                category=row["category"],
                quantity=row["quantity"],
                revenue=float(row["revenue"]),
            )
            for row in rows
            if row["category"] is not None
        ]
