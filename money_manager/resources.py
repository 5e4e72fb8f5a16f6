"""Generic CRUD over one table, shared by users, spending and income."""
import logging
from typing import Any, Generic, List, Optional, Sequence, Type, TypeVar

from sqlalchemy import delete, insert, select, update
from sqlalchemy.exc import IntegrityError

from .database import Store
from .errors import ConflictError, NotFoundError
from .models import Base, Income, Spending, User
from .schemas import ID_MAX, ID_MIN

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=Base)


class Resource(Generic[ModelT]):
    """Create / get / list / update / delete for ``model``.

    Each operation issues exactly one parameterized statement through the
    store handed in by the caller. ``owner_column`` enables the ``user_id``
    filter on listings and ``order_by`` fixes their ordering.
    """

    def __init__(
        self,
        model: Type[ModelT],
        name: str,
        order_by: Sequence[Any] = (),
        owner_column: Optional[Any] = None,
        conflict_message: Optional[str] = None,
    ):
        self.model = model
        self.name = name
        self.order_by = tuple(order_by)
        self.owner_column = owner_column
        self.conflict_message = conflict_message
        self.not_found_message = f"{name} not found"

    def _conflict(self, action: str, error: IntegrityError) -> ConflictError:
        logger.warning("Rejected %s %s: %s", self.name.lower(), action, error.orig)
        return ConflictError(self.conflict_message)

    async def create(self, store: Store, **values) -> int:
        statement = insert(self.model).values(**values).returning(self.model.id)
        try:
            record_id = await store.scalar(statement)
        except IntegrityError as e:
            raise self._conflict("insert", e) from e
        logger.info("Created %s %s", self.name.lower(), record_id)
        return record_id

    async def get(self, store: Store, record_id: int) -> ModelT:
        record = await store.scalar(select(self.model).where(self.model.id == record_id))
        if record is None:
            raise NotFoundError(self.not_found_message)
        return record

    async def list(self, store: Store, user_id: Optional[int] = None) -> List[ModelT]:
        statement = select(self.model)
        if user_id is not None and self.owner_column is not None:
            # no INTEGER column can hold it, so nobody owns anything under it
            if not ID_MIN <= user_id <= ID_MAX:
                return []
            statement = statement.where(self.owner_column == user_id)
        if self.order_by:
            statement = statement.order_by(*self.order_by)
        return await store.scalars(statement)

    async def exists(self, store: Store, record_id: int) -> bool:
        found = await store.scalar(select(self.model.id).where(self.model.id == record_id))
        return found is not None

    async def update(self, store: Store, record_id: int, **values) -> None:
        statement = (
            update(self.model)
            .where(self.model.id == record_id)
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        try:
            affected = await store.rowcount(statement)
        except IntegrityError as e:
            raise self._conflict("update", e) from e
        if affected == 0:
            raise NotFoundError(self.not_found_message)
        logger.info("Updated %s %s", self.name.lower(), record_id)

    async def delete(self, store: Store, record_id: int) -> None:
        statement = delete(self.model).where(self.model.id == record_id).execution_options(
            synchronize_session=False
        )
        affected = await store.rowcount(statement)
        if affected == 0:
            raise NotFoundError(self.not_found_message)
        logger.info("Deleted %s %s", self.name.lower(), record_id)


users = Resource(
    User,
    "User",
    order_by=(User.id,),
    conflict_message="Username already exists",
)

spending = Resource(
    Spending,
    "Spending",
    order_by=(Spending.date.desc(), Spending.id.desc()),
    owner_column=Spending.user_id,
    conflict_message="user_id does not reference an existing user",
)

income = Resource(
    Income,
    "Income",
    order_by=(Income.date.desc(), Income.id.desc()),
    owner_column=Income.user_id,
    conflict_message="user_id does not reference an existing user",
)
