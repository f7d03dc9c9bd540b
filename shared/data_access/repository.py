"""
Generic repository over a single mapped entity type.

Reads run immediately against the unit of work's session; writes are only
staged and reach the database when the owning UnitOfWork saves.

Relations to eager-load are passed as the mapped relationship attributes
themselves (``Product.category``), or as a tuple forming a path
(``(OrderDetail.product, Product.category)``). They are fetched with a JOIN in
the same statement as the base query. Relations that are not requested stay
unloaded: many-to-one references read as ``None``.
"""
from typing import Any, Generic, Optional, Sequence, TypeVar, Union

from sqlalchemy import ColumnElement, func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import QueryableAttribute, RelationshipProperty, joinedload
from sqlalchemy.orm.exc import StaleDataError

from shared.config.database import Base
from shared.exceptions import ConflictError, PersistenceError

T = TypeVar("T", bound=Base)

Include = Union[QueryableAttribute, tuple]


class Repository(Generic[T]):
    model: type[T]

    def __init__(self, session: AsyncSession):
        self._session = session

    # --- READS ---

    async def get_all(
        self,
        predicate: Optional[ColumnElement[bool]] = None,
        include: Sequence[Include] = (),
        tracking: bool = True,
    ) -> list[T]:
        """Return every entity matching `predicate` (all of them when omitted).

        With ``tracking=False`` the results are detached from the session, so
        changes to them are never staged.
        """
        stmt = self._select(predicate, include)
        result = await self._session.execute(stmt)
        entities = list(result.unique().scalars().all())
        if not tracking:
            for entity in entities:
                self._session.expunge(entity)
        return entities

    async def get(
        self,
        predicate: ColumnElement[bool],
        include: Sequence[Include] = (),
        tracking: bool = True,
    ) -> Optional[T]:
        """Return the first match or None. Raising for "not found" is the caller's call."""
        stmt = self._select(predicate, include).limit(1)
        result = await self._session.execute(stmt)
        entity = result.unique().scalars().first()
        if entity is not None and not tracking:
            self._session.expunge(entity)
        return entity

    async def count(self, predicate: Optional[ColumnElement[bool]] = None) -> int:
        stmt = select(func.count()).select_from(self.model)
        if predicate is not None:
            stmt = stmt.where(predicate)
        result = await self._session.execute(stmt)
        return result.scalar_one()

    async def exists(self, predicate: ColumnElement[bool]) -> bool:
        return await self.count(predicate) > 0

    # --- STAGED WRITES ---

    def add(self, entity: T) -> T:
        entity.validate()
        self._session.add(entity)
        return entity

    async def remove(self, entity: T) -> None:
        # AsyncSession.delete loads cascaded children so they are staged with the parent
        await self._session.delete(entity)

    async def remove_range(self, entities: Sequence[T]) -> None:
        for entity in entities:
            await self.remove(entity)

    # --- QUERY BUILDING ---

    def _select(self, predicate, include: Sequence[Include]):
        stmt = select(self.model)
        if predicate is not None:
            stmt = stmt.where(predicate)
        for relation in include:
            stmt = stmt.options(self._load_option(relation))
        return stmt

    def _load_option(self, relation: Include):
        path = relation if isinstance(relation, tuple) else (relation,)
        if not path:
            raise ValueError("Empty include path")

        owner = self.model
        option = None
        for attr in path:
            self._check_relation(owner, attr)
            option = joinedload(attr) if option is None else option.joinedload(attr)
            owner = attr.property.mapper.class_
        return option

    @staticmethod
    def _check_relation(owner: type, attr: Any) -> None:
        if not isinstance(attr, QueryableAttribute) or not isinstance(
            attr.property, RelationshipProperty
        ):
            raise ValueError(f"{attr!r} is not a relationship")
        if not issubclass(owner, attr.class_):
            raise ValueError(
                f"{attr.class_.__name__}.{attr.key} is not a relation of {owner.__name__}"
            )


class UpdatableRepository(Repository[T]):
    async def update(self, entity: T) -> T:
        """Stage a full-row replace of the persisted row with the same identity.

        Returns the session-bound instance; last write wins unless the model
        carries a version counter. A detached copy read at an older version
        raises ConflictError here, before anything is staged.
        """
        entity.validate()
        try:
            return await self._session.merge(entity)
        except StaleDataError as e:
            raise ConflictError(
                f"{type(entity).__name__} was modified by another operation", {"error": str(e)}
            ) from e
        except SQLAlchemyError as e:
            raise PersistenceError(f"Update of {type(entity).__name__} failed: {e}", {"error": str(e)}) from e
