"""
PotTogether Backend: Ingredient Service
========================================

Read-mostly catalog. Rows are only added through the administrative
POST /api/ingredients endpoint; records reference them by id.
"""

import logging
from typing import List

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from pottogether.exceptions import DatabaseError, ValidationError
from pottogether.models import Ingredient
from pottogether.schemas.ingredient import IngredientCreated, IngredientResponse

logger = logging.getLogger(__name__)


class IngredientService:
    async def list_ingredients(self, db: AsyncSession) -> List[IngredientResponse]:
        try:
            rows = await db.scalars(select(Ingredient).order_by(Ingredient.id))
        except SQLAlchemyError as e:
            logger.error("list_ingredients failed: %s", str(e))
            raise DatabaseError(context={"operation": "list_ingredients"})

        return [
            IngredientResponse(
                ingredient_id=i.id,
                name=i.name,
                image=i.image,
                interval=i.time_interval,
                requirement=i.requirement,
            )
            for i in rows.all()
        ]

    async def add_ingredient(
        self,
        db: AsyncSession,
        name: str,
        image: str,
        interval: int,
        requirement: str = "",
    ) -> IngredientCreated:
        """
        Adds a catalog entry.

        Args:
            requirement: Unlock tag such as "level2"; empty for starters.

        Raises:
            ValidationError: blank name or negative interval
        """
        name = (name or "").strip()
        if not name:
            raise ValidationError(message="Ingredient name must not be empty", field="name")
        if interval is None or interval < 0:
            raise ValidationError(message="interval must be zero or positive", field="interval")

        try:
            ingredient = Ingredient(
                name=name,
                image=image or "",
                time_interval=interval,
                requirement=(requirement or "").strip(),
            )
            db.add(ingredient)
            await db.flush()
        except SQLAlchemyError as e:
            logger.error("add_ingredient failed for name=%s: %s", name, str(e))
            raise DatabaseError(context={"operation": "add_ingredient", "name": name})

        logger.info("Ingredient %s added: %s (%s)", ingredient.id, name, ingredient.requirement or "-")
        return IngredientCreated(ingredient_id=ingredient.id, image=ingredient.image)


# ── Singleton Instance ────────────────────────────────────────────────────
ingredient_service = IngredientService()
