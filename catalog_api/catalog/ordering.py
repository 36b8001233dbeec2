"""Manual ordering of categories, types, brands and featured products.

Two operations share one protocol across every orderable scope:

- adjacent swap (``move_step``): exchange an item's order value with its
  neighbor's inside the sibling group;
- batch rewrite (``reorder_all``): overwrite the order of a list of ids
  with their positions.

A sibling group is the set of rows compared for ordering: categories
sharing a ``parent_id``, the whole table for types and brands, and every
featured product for ``featured``. Groups are ordered by ``(order, id)``.
"""

from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any

import structlog
from sqlalchemy import ColumnElement, select, true, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import InstrumentedAttribute

from catalog_api.catalog.models import Brand, Category, Product, ProductType
from catalog_api.domain.exceptions import NonOrderableScopeError, NotFoundError, ValidationError
from catalog_api.domain.value_objects import MoveDirection, OrderScope

logger = structlog.get_logger()


@dataclass(frozen=True)
class MoveResult:
    """Outcome of an adjacent swap.

    Attributes:
        moved: False when the item was already at the edge of its group.
        scope: Scope that was reordered.
        entity_id: Item that was moved.
        swapped_with: Neighbor it changed places with, if any.
    """

    scope: OrderScope
    entity_id: int
    moved: bool
    swapped_with: int | None = None


@dataclass(frozen=True)
class _Target:
    model: Any
    order_column: InstrumentedAttribute
    label: str


_TARGETS: dict[OrderScope, _Target] = {
    OrderScope.CATEGORIES: _Target(Category, Category.sort_order, "Category"),
    OrderScope.TYPES: _Target(ProductType, ProductType.sort_order, "Type"),
    OrderScope.BRANDS: _Target(Brand, Brand.sort_order, "Brand"),
    OrderScope.FEATURED: _Target(Product, Product.featured_order, "Featured product"),
}


def parse_scope(scope: str | OrderScope) -> OrderScope:
    """Resolve a scope name.

    Raises:
        NonOrderableScopeError: For ``products`` or any unknown name.
    """
    if isinstance(scope, OrderScope):
        return scope
    try:
        return OrderScope(scope)
    except ValueError as e:
        raise NonOrderableScopeError(str(scope), [s.value for s in OrderScope]) from e


class OrderingProtocol:
    """Adjacent swap and batch rewrite for every orderable scope.

    Both operations only flush; the caller owns the transaction.

    Example usage:
        ordering = OrderingProtocol(session)
        await ordering.move_step(OrderScope.BRANDS, 4, MoveDirection.UP)
        await ordering.reorder_all(OrderScope.FEATURED, [9, 2, 5])
    """

    def __init__(self, session: AsyncSession) -> None:
        """Initialize protocol with database session.

        Args:
            session: Async SQLAlchemy session.
        """
        self.session = session

    # ------------------------------------------------------------------
    # Adjacent swap
    # ------------------------------------------------------------------

    async def move_step(
        self,
        scope: str | OrderScope,
        entity_id: int,
        direction: MoveDirection,
    ) -> MoveResult:
        """Move one item a single step within its sibling group.

        When the item and its neighbor hold the same order value, the whole
        group is first renumbered to positional indices so that the swap is
        always visible.

        Args:
            scope: Orderable scope.
            entity_id: Item to move.
            direction: Up (towards lower order) or down.

        Returns:
            Move result; ``moved`` is False at the group boundary.

        Raises:
            NonOrderableScopeError: If the scope is not orderable.
            NotFoundError: If the item is not in the scope.
        """
        scope = parse_scope(scope)
        target = _TARGETS[scope]

        group = await self._sibling_group(scope, entity_id)
        ids = [row_id for row_id, _ in group]
        index = ids.index(entity_id)
        neighbor = index + direction.offset

        if neighbor < 0 or neighbor >= len(group):
            logger.debug(
                "Move at group boundary",
                scope=scope.value,
                entity_id=entity_id,
                direction=direction.value,
            )
            return MoveResult(scope=scope, entity_id=entity_id, moved=False)

        (own_id, own_order), (other_id, other_order) = group[index], group[neighbor]
        if own_order != other_order:
            await self._set_order(target, own_id, other_order)
            await self._set_order(target, other_id, own_order)
        else:
            positions = list(range(len(group)))
            positions[index], positions[neighbor] = positions[neighbor], positions[index]
            for (row_id, current), position in zip(group, positions):
                if current != position:
                    await self._set_order(target, row_id, position)

        await self.session.flush()
        logger.info(
            "Item moved",
            scope=scope.value,
            entity_id=entity_id,
            direction=direction.value,
            swapped_with=other_id,
            renumbered=own_order == other_order,
        )
        return MoveResult(scope=scope, entity_id=entity_id, moved=True, swapped_with=other_id)

    # ------------------------------------------------------------------
    # Batch rewrite
    # ------------------------------------------------------------------

    async def reorder_all(self, scope: str | OrderScope, ordered_ids: Sequence[int]) -> int:
        """Assign ``order = index`` to each id in the list.

        Ids may span sibling groups; rows not listed keep their order.

        Args:
            scope: Orderable scope.
            ordered_ids: Ids in their new order.

        Returns:
            Number of rows rewritten.

        Raises:
            NonOrderableScopeError: If the scope is not orderable.
            ValidationError: If the list is empty or has duplicates.
            NotFoundError: If an id is not in the scope.
        """
        scope = parse_scope(scope)
        target = _TARGETS[scope]
        ordered_ids = list(ordered_ids)

        if not ordered_ids:
            raise ValidationError("orderedIds must not be empty", field="orderedIds")
        duplicates = sorted({i for i in ordered_ids if ordered_ids.count(i) > 1})
        if duplicates:
            raise ValidationError(
                f"orderedIds contains duplicates: {duplicates}",
                field="orderedIds",
                details={"duplicate_ids": duplicates},
            )

        result = await self.session.execute(
            select(target.model.id).where(
                target.model.id.in_(ordered_ids),
                self._scope_clause(scope),
            )
        )
        known = set(result.scalars().all())
        missing = [i for i in ordered_ids if i not in known]
        if missing:
            raise NotFoundError(target.label, missing[0] if len(missing) == 1 else missing)

        for position, row_id in enumerate(ordered_ids):
            await self._set_order(target, row_id, position)
        await self.session.flush()

        logger.info("Scope reordered", scope=scope.value, count=len(ordered_ids))
        return len(ordered_ids)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _scope_clause(scope: OrderScope) -> ColumnElement[bool]:
        if scope is OrderScope.FEATURED:
            return Product.is_featured.is_(True)
        return true()

    async def _sibling_group(self, scope: OrderScope, entity_id: int) -> list[tuple[int, int]]:
        """Get ``(id, order)`` pairs of the group holding an item.

        Raises:
            NotFoundError: If the item is not in the scope.
        """
        target = _TARGETS[scope]
        stmt = select(target.model.id, target.order_column).where(self._scope_clause(scope))

        if scope is OrderScope.CATEGORIES:
            result = await self.session.execute(
                select(Category.parent_id).where(Category.id == entity_id)
            )
            row = result.first()
            if row is None:
                raise NotFoundError(target.label, entity_id)
            parent_id = row[0]
            stmt = stmt.where(
                Category.parent_id.is_(None) if parent_id is None else Category.parent_id == parent_id
            )

        result = await self.session.execute(stmt.order_by(target.order_column, target.model.id))
        group = [(row_id, order) for row_id, order in result.all()]
        if entity_id not in {row_id for row_id, _ in group}:
            raise NotFoundError(target.label, entity_id)
        return group

    async def _set_order(self, target: _Target, row_id: int, value: int) -> None:
        await self.session.execute(
            update(target.model)
            .where(target.model.id == row_id)
            .values({target.order_column.key: value})
        )
