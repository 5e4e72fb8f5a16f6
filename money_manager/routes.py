"""API routes for users, spending and income"""
import logging
from typing import Annotated, List, Optional, Type

from fastapi import APIRouter, Depends, Path, Query, Request

from .database import Store
from .errors import NotFoundError, ServiceUnavailableError, ValidationError
from .resources import Resource, income, spending, users
from .schemas import (
    ID_MAX,
    Created,
    LedgerEntryCreate,
    LedgerEntryOut,
    LedgerEntryUpdate,
    Message,
    ModelT,
    UserCreate,
    UserCreated,
    UserOut,
    UserUpdate,
    decode,
)
from .security import hash_password

logger = logging.getLogger(__name__)


# --- Dependencies ---

def get_store(request: Request) -> Store:
    """Dependency to get the store handle from the application state."""
    store = getattr(request.app.state, "store", None)
    if store is None or store.closed:
        logger.error("Store not found in application state. Check database connection.")
        raise ServiceUnavailableError()
    return store


StoreDep = Annotated[Store, Depends(get_store)]
RecordId = Annotated[int, Path(gt=0, le=ID_MAX, description="Positive integer id")]
OwnerFilter = Annotated[Optional[int], Query(description="Only entries of this user")]


async def read_update(
    request: Request, schema: Type[ModelT], resource: Resource, store: Store, record_id: int
) -> ModelT:
    """Decode an update body; a missing record outranks an invalid body."""
    body = await request.body()
    try:
        return decode(schema, body)
    except ValidationError:
        if not await resource.exists(store, record_id):
            raise NotFoundError(resource.not_found_message)
        raise


# --- Users ---

users_router = APIRouter(prefix="/users", tags=["users"])


@users_router.post("", response_model=UserCreated, status_code=201)
async def create_user(payload: UserCreate, store: StoreDep):
    hashed_password = await hash_password(payload.password)
    user_id = await users.create(store, username=payload.username, hashed_password=hashed_password)
    return UserCreated(id=user_id, username=payload.username)


@users_router.get("", response_model=List[UserOut])
async def list_users(store: StoreDep):
    return await users.list(store)


@users_router.get("/{user_id}", response_model=UserOut)
async def get_user(user_id: RecordId, store: StoreDep):
    return await users.get(store, user_id)


@users_router.put("/{user_id}", response_model=Message)
async def update_user(user_id: RecordId, request: Request, store: StoreDep):
    payload = await read_update(request, UserUpdate, users, store, user_id)
    values = {"username": payload.username}
    if payload.password:
        values["hashed_password"] = await hash_password(payload.password)
    await users.update(store, user_id, **values)
    return Message(message="User updated successfully")


@users_router.delete("/{user_id}", response_model=Message)
async def delete_user(user_id: RecordId, store: StoreDep):
    await users.delete(store, user_id)
    return Message(message="User deleted successfully")


# --- Spending / Income ---

def ledger_router(resource: Resource, prefix: str) -> APIRouter:
    """Routes for one ledger table; spending and income share them."""
    router = APIRouter(prefix=prefix, tags=[resource.name.lower()])
    name = resource.name

    @router.post("", response_model=Created, status_code=201)
    async def create_entry(payload: LedgerEntryCreate, store: StoreDep):
        entry_id = await resource.create(store, **payload.model_dump())
        return Created(id=entry_id, message=f"{name} created successfully")

    @router.get("", response_model=List[LedgerEntryOut])
    async def list_entries(store: StoreDep, user_id: OwnerFilter = None):
        return await resource.list(store, user_id=user_id)

    @router.get("/{entry_id}", response_model=LedgerEntryOut)
    async def get_entry(entry_id: RecordId, store: StoreDep):
        return await resource.get(store, entry_id)

    @router.put("/{entry_id}", response_model=Message)
    async def update_entry(entry_id: RecordId, request: Request, store: StoreDep):
        payload = await read_update(request, LedgerEntryUpdate, resource, store, entry_id)
        await resource.update(store, entry_id, **payload.model_dump())
        return Message(message=f"{name} updated successfully")

    @router.delete("/{entry_id}", response_model=Message)
    async def delete_entry(entry_id: RecordId, store: StoreDep):
        await resource.delete(store, entry_id)
        return Message(message=f"{name} deleted successfully")

    return router


spending_router = ledger_router(spending, "/spending")
income_router = ledger_router(income, "/income")
