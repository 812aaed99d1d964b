"""Category reconciliation.

Upserts Magento categories into the destination category tree. The handle
(Magento ``url_key``) is the only identity shared by both systems: a source
category is matched to a destination category by handle alone, never by
Magento id. Renaming a ``url_key`` on the source therefore creates a new
destination category instead of updating the old one.

Parents are linked in a second pass so that a child can always find its
parent when both are in the same batch, whatever their order.
"""

from collections.abc import Sequence
from enum import Enum
from typing import Any, Protocol

import structlog

from catalog_service.exceptions import CategoryCycleError
from catalog_service.infrastructure.magento.schemas import SourceCategory
from catalog_service.services.diffing import diff_fields

logger = structlog.get_logger()


class ReconcileOutcome(str, Enum):
    """What ``reconcile_one`` did to the destination."""

    CREATED = "created"
    UPDATED = "updated"
    UNCHANGED = "unchanged"


class CategoryStore(Protocol):
    """Destination operations the reconciler needs."""

    def with_transaction(self, session: Any) -> "CategoryStore": ...

    async def retrieve(self, category_id: str) -> Any | None: ...

    async def retrieve_by_handle(self, handle: str) -> Any | None: ...

    async def create(self, fields: dict[str, Any]) -> Any: ...

    async def update(self, category_id: str, fields: dict[str, Any]) -> None: ...


def extract_handle(source: SourceCategory) -> str:
    """Return the category's ``url_key`` or ``""`` when it has none."""
    return source.url_key


def normalize_category(source: SourceCategory) -> dict[str, Any]:
    """Map a Magento category onto destination fields.

    Categories without an ``is_active`` flag are treated as active.
    """
    return {
        "name": source.name,
        "handle": extract_handle(source),
        "is_active": True if source.is_active is None else source.is_active,
        "metadata": {"magento_id": source.id},
    }


def diff_category(normalized: dict[str, Any], existing: Any) -> dict[str, Any]:
    """Return the partial update that brings ``existing`` in line with the source."""
    return diff_fields(normalized, existing)


def _find_in_batch(batch: Sequence[SourceCategory], source_id: int) -> SourceCategory | None:
    for candidate in batch:
        if candidate.id == source_id:
            return candidate
    return None


class CategoryReconciler:
    """Create-or-update of destination categories keyed by handle.

    Example usage:
        reconciler = CategoryReconciler(ProductCategoryService(), UnitOfWork())
        summary = await reconciler.reconcile_batch(category_list.items)
    """

    def __init__(self, categories: CategoryStore, unit_of_work: Any):
        self.categories = categories
        self.unit_of_work = unit_of_work

    async def reconcile_one(
        self,
        source: SourceCategory,
        batch: Sequence[SourceCategory],
        link_parent: bool = True,
    ) -> ReconcileOutcome:
        """Upsert one source category inside a single transaction.

        With ``link_parent`` the parent is resolved from ``batch`` in the same
        step; this only succeeds when the parent already exists in the
        destination.
        """
        normalized = normalize_category(source)

        async with self.unit_of_work.transaction() as session:
            categories = self.categories.with_transaction(session)
            existing = await categories.retrieve_by_handle(normalized["handle"])

            if existing is None:
                fields = dict(normalized)
                if link_parent:
                    parent = await self._resolve_parent(categories, source, batch)
                    if parent is not None:
                        fields["parent_category_id"] = parent.id
                        fields["rank"] = source.position
                created = await categories.create(fields)
                logger.debug(
                    "Created category",
                    magento_id=source.id,
                    handle=normalized["handle"],
                    category_id=created.id,
                )
                return ReconcileOutcome.CREATED

            changes = diff_category(normalized, existing)
            if link_parent:
                changes.update(
                    await self._parent_changes(categories, source, batch, existing)
                )

            if not changes:
                return ReconcileOutcome.UNCHANGED

            await categories.update(existing.id, changes)
            logger.debug(
                "Updated category",
                magento_id=source.id,
                handle=normalized["handle"],
                fields=sorted(changes),
            )
            return ReconcileOutcome.UPDATED

    async def link_parent(
        self, source: SourceCategory, batch: Sequence[SourceCategory]
    ) -> bool:
        """Point an already-reconciled category at its parent.

        Returns True when the parent link was written.
        """
        handle = extract_handle(source)
        if not handle or source.parent_id is None:
            return False

        async with self.unit_of_work.transaction() as session:
            categories = self.categories.with_transaction(session)
            existing = await categories.retrieve_by_handle(handle)
            if existing is None:
                return False

            changes = await self._parent_changes(categories, source, batch, existing)
            if not changes:
                return False

            await categories.update(existing.id, changes)
            logger.debug(
                "Linked category to parent",
                handle=handle,
                parent_category_id=changes["parent_category_id"],
            )
            return True

    async def reconcile_batch(self, batch: Sequence[SourceCategory]) -> dict[str, int]:
        """Reconcile a whole batch: upsert everything, then link parents.

        Per-category failures are logged and counted; they never stop the
        batch.
        """
        summary = {
            "seen": len(batch),
            "created": 0,
            "updated": 0,
            "unchanged": 0,
            "linked": 0,
            "failed": 0,
        }
        failed_ids: set[int] = set()

        for source in batch:
            try:
                outcome = await self.reconcile_one(source, batch, link_parent=False)
                summary[outcome.value] += 1
            except Exception as e:
                logger.error(
                    "Error reconciling category",
                    magento_id=source.id,
                    handle=extract_handle(source),
                    error=str(e),
                )
                failed_ids.add(source.id)

        for source in batch:
            if source.id in failed_ids:
                continue
            try:
                if await self.link_parent(source, batch):
                    summary["linked"] += 1
            except Exception as e:
                logger.error(
                    "Error linking category parent",
                    magento_id=source.id,
                    handle=extract_handle(source),
                    parent_id=source.parent_id,
                    error=str(e),
                )
                failed_ids.add(source.id)

        summary["failed"] = len(failed_ids)
        return summary

    async def _resolve_parent(
        self,
        categories: CategoryStore,
        source: SourceCategory,
        batch: Sequence[SourceCategory],
    ) -> Any | None:
        """Find the destination category of ``source``'s parent, if reachable."""
        if source.parent_id is None:
            return None

        parent_source = _find_in_batch(batch, source.parent_id)
        if parent_source is None:
            # Unchanged parents are filtered out of incremental batches
            logger.info(
                "Parent category not in batch, leaving link unchanged",
                magento_id=source.id,
                parent_id=source.parent_id,
            )
            return None

        parent_handle = extract_handle(parent_source)
        if not parent_handle:
            logger.warning(
                "Parent category has no url_key, cannot link",
                magento_id=source.id,
                parent_id=source.parent_id,
            )
            return None

        parent = await categories.retrieve_by_handle(parent_handle)
        if parent is None:
            logger.info(
                "Parent category not in destination yet",
                magento_id=source.id,
                parent_handle=parent_handle,
            )
        return parent

    async def _parent_changes(
        self,
        categories: CategoryStore,
        source: SourceCategory,
        batch: Sequence[SourceCategory],
        existing: Any,
    ) -> dict[str, Any]:
        parent = await self._resolve_parent(categories, source, batch)
        if parent is None or parent.id == existing.parent_category_id:
            return {}

        await self._ensure_not_ancestor(categories, existing.id, parent)
        return {"parent_category_id": parent.id, "rank": source.position}

    async def _ensure_not_ancestor(
        self, categories: CategoryStore, category_id: str, parent: Any
    ) -> None:
        """Raise if ``category_id`` is ``parent`` or one of its ancestors."""
        seen: set[str] = set()
        node = parent
        while node is not None and node.id not in seen:
            if node.id == category_id:
                raise CategoryCycleError(category_id, parent.id)
            seen.add(node.id)
            if node.parent_category_id is None:
                break
            node = await categories.retrieve(node.parent_category_id)
