"""Item API routes."""

import sqlite3
from typing import Any

from fastapi import APIRouter, Depends, Query, Request
from pydantic import BaseModel, Field

from ...app import Application
from ...exceptions import ItemAlreadyExistsError, ItemNotFoundError, ItemOwnershipError
from ...logging_config import get_logger
from ...models import Item
from ..middleware import user_id_from

logger = get_logger(__name__)


class ItemCreate(BaseModel):
    """Request model for creating an item."""

    name: str = Field(min_length=1, max_length=200)
    description: str | None = None
    metadata: dict[str, Any] = Field(default_factory=dict)


class ItemReplace(BaseModel):
    """Request model for a full update."""

    name: str = Field(min_length=1, max_length=200)
    description: str | None = None
    metadata: dict[str, Any] = Field(default_factory=dict)


class ItemPatch(BaseModel):
    """Request model for a partial update."""

    name: str | None = Field(default=None, min_length=1, max_length=200)
    description: str | None = None
    metadata: dict[str, Any] | None = None


class ItemResponse(BaseModel):
    """Response model for an item."""

    id: int
    name: str
    description: str | None = None
    metadata: dict[str, Any] = Field(default_factory=dict)
    created_by: str | None = None
    created_at: str | None = None
    updated_at: str | None = None


class DeleteResponse(BaseModel):
    status: str
    id: int


def current_user(request: Request) -> str:
    return user_id_from(request)


def create_items_router(app: Application) -> APIRouter:
    """Create items router."""
    router = APIRouter(prefix="/api/items", tags=["items"])

    async def _require_item(item_id: int) -> Item:
        item = await app.storage.get_item(item_id)
        if item is None:
            raise ItemNotFoundError(item_id)
        return item

    async def _ensure_name_free(name: str, item_id: int | None = None) -> None:
        existing = await app.storage.get_item_by_name(name)
        if existing is not None and existing.id != item_id:
            raise ItemAlreadyExistsError(name)

    async def _update(item_id: int, fields: dict[str, Any]) -> dict:
        await _require_item(item_id)
        if fields.get("name"):
            await _ensure_name_free(fields["name"], item_id)
        try:
            item = await app.storage.update_item(item_id, **fields)
        except sqlite3.IntegrityError:
            raise ItemAlreadyExistsError(fields.get("name", ""))
        if item is None:
            raise ItemNotFoundError(item_id)
        return item.to_dict()

    @router.post("", response_model=ItemResponse, status_code=201)
    async def create_item(
        payload: ItemCreate, user_id: str = Depends(current_user)
    ) -> dict:
        """Create an item owned by the caller."""
        await _ensure_name_free(payload.name)
        try:
            item = await app.storage.create_item(
                name=payload.name,
                description=payload.description,
                metadata=payload.metadata,
                created_by=user_id,
            )
        except sqlite3.IntegrityError:
            # Lost a race with a concurrent insert of the same name
            raise ItemAlreadyExistsError(payload.name)
        logger.info("Item %s created by %s", item.id, user_id)
        return item.to_dict()

    @router.get("", response_model=list[ItemResponse])
    async def list_items() -> list[dict]:
        """List all items."""
        return [item.to_dict() for item in await app.storage.list_items()]

    @router.get("/search", response_model=list[ItemResponse])
    async def search_items(q: str = Query(min_length=1)) -> list[dict]:
        """Search items by name or description."""
        return [item.to_dict() for item in await app.storage.search_items(q)]

    @router.put("/{item_id}", response_model=ItemResponse)
    async def replace_item(item_id: int, payload: ItemReplace) -> dict:
        """Replace every editable field of an item."""
        return await _update(item_id, payload.model_dump())

    @router.patch("/{item_id}", response_model=ItemResponse)
    async def patch_item(item_id: int, payload: ItemPatch) -> dict:
        """Update only the fields present in the request."""
        fields = payload.model_dump(exclude_unset=True)
        if fields.get("name", "") is None:
            del fields["name"]
        return await _update(item_id, fields)

    @router.delete("/{item_id}", response_model=DeleteResponse)
    async def delete_item(item_id: int, user_id: str = Depends(current_user)) -> dict:
        """Delete an item. Only its creator may delete it."""
        item = await _require_item(item_id)
        if item.created_by != user_id:
            raise ItemOwnershipError(item_id)
        await app.storage.delete_item(item_id)
        logger.info("Item %s deleted by %s", item_id, user_id)
        return {"status": "deleted", "id": item_id}

    return router
