"""
Unit of Work: one session, one repository per entity type, one commit.

A UnitOfWork is request-scoped. Its session is not safe for concurrent use,
so every logical operation opens its own:

    async with UnitOfWork() as uow:
        product = await uow.product.get(Product.id == 1)
        ...
        await uow.save()

Anything staged but not saved is rolled back when the block exits.
"""
import structlog
from opentelemetry import trace
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy.orm.exc import StaleDataError

from services.cart_service.repository import ShoppingCartRepository
from services.catalog_service.repository import CategoryRepository, ProductRepository
from services.company_service.repository import CompanyRepository
from services.order_service.repository import OrderDetailRepository, OrderHeaderRepository
from services.user_service.repository import ApplicationUserRepository
from shared.config.database import AsyncSessionLocal
from shared.exceptions import ConflictError, PersistenceError, ValidationError
from shared.observability import ecomm_uow_commit_total

logger = structlog.get_logger(__name__)
tracer = trace.get_tracer(__name__)


class UnitOfWork:
    def __init__(self, session_factory: async_sessionmaker = AsyncSessionLocal):
        self._session_factory = session_factory
        self._session: AsyncSession | None = None

    async def __aenter__(self) -> "UnitOfWork":
        self._session = self._session_factory()

        self.category = CategoryRepository(self._session)
        self.product = ProductRepository(self._session)
        self.company = CompanyRepository(self._session)
        self.application_user = ApplicationUserRepository(self._session)
        self.shopping_cart = ShoppingCartRepository(self._session)
        self.order_header = OrderHeaderRepository(self._session)
        self.order_detail = OrderDetailRepository(self._session)
        return self

    async def __aexit__(self, exc_type, exc, tb):
        # close() discards the open transaction and detaches loaded entities as-is
        try:
            await self._session.close()
        finally:
            self._session = None

    @property
    def session(self) -> AsyncSession:
        if self._session is None:
            raise RuntimeError("UnitOfWork used outside of its 'async with' block")
        return self._session

    async def save(self) -> None:
        """Commit every staged add/update/remove in one transaction.

        All or nothing: on any failure the transaction is rolled back, the
        staged change set is discarded and the error is raised.
        """
        session = self.session
        with tracer.start_as_current_span("unit_of_work.save"):
            pending = list(session.new) + list(session.dirty)
            try:
                for entity in pending:
                    entity.validate()
            except ValidationError as e:
                await session.rollback()
                ecomm_uow_commit_total.labels(outcome="invalid").inc()
                logger.warning("commit_rejected", reason="validation", errors=e.errors)
                raise

            try:
                await session.commit()
            except StaleDataError as e:
                await session.rollback()
                ecomm_uow_commit_total.labels(outcome="conflict").inc()
                logger.warning("commit_conflict", error=str(e))
                raise ConflictError("Entity was modified by another operation", {"error": str(e)}) from e
            except SQLAlchemyError as e:
                await session.rollback()
                ecomm_uow_commit_total.labels(outcome="failed").inc()
                logger.error("commit_failed", error=str(e))
                raise PersistenceError(f"Commit failed: {e}", {"error": str(e)}) from e

            ecomm_uow_commit_total.labels(outcome="committed").inc()
            logger.debug("commit_succeeded", staged=len(pending))

    async def rollback(self) -> None:
        await self.session.rollback()
