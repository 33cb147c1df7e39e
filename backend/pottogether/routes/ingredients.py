"""
PotTogether Backend: Ingredient Route Handlers
===============================================

GET lists the catalog; POST adds an entry with its image (multipart).
"""

import logging
from typing import List

from fastapi import APIRouter, Depends, File, Form, UploadFile
from sqlalchemy.ext.asyncio import AsyncSession

from pottogether.database import get_db_session
from pottogether.identity import get_current_user_id
from pottogether.schemas.common import Envelope
from pottogether.schemas.ingredient import IngredientCreated, IngredientResponse
from pottogether.services.ingredient_service import ingredient_service
from pottogether.services.object_store import ObjectStore, get_object_store

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/ingredients", tags=["Ingredients"])


@router.get("", response_model=Envelope[List[IngredientResponse]], summary="Ingredient catalog")
async def list_ingredients(
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db_session),
) -> Envelope[List[IngredientResponse]]:
    ingredients = await ingredient_service.list_ingredients(db)
    return Envelope[List[IngredientResponse]].ok(ingredients)


@router.post(
    "",
    status_code=201,
    response_model=Envelope[IngredientCreated],
    summary="Add an ingredient to the catalog",
)
async def add_ingredient(
    name: str = Form(...),
    interval: int = Form(..., description="Nominal cooking time in seconds"),
    requirement: str = Form(default="", description='Unlock tag, e.g. "level2"'),
    image: UploadFile = File(...),
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db_session),
    store: ObjectStore = Depends(get_object_store),
) -> Envelope[IngredientCreated]:
    try:
        content = await image.read()
        stored = await store.put(
            kind="ingredients",
            name_hint=name,
            filename=image.filename or "",
            content=content,
            content_length=image.size,
        )
    finally:
        await image.close()

    try:
        created = await ingredient_service.add_ingredient(
            db, name=name, image=stored.url, interval=interval, requirement=requirement
        )
    except Exception:
        await store.delete(stored.key)
        raise

    logger.info("Ingredient %s added by user %s", created.ingredient_id, user_id)
    return Envelope[IngredientCreated].ok(created)
