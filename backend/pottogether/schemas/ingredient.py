"""
PotTogether Backend: Ingredient Schemas
========================================
"""

from pydantic import Field

from pottogether.schemas.common import APIModel


class IngredientResponse(APIModel):
    ingredient_id: int = Field(alias="ingredientID")
    name: str
    image: str
    interval: int
    requirement: str


class IngredientCreated(APIModel):
    ingredient_id: int = Field(alias="ingredientID")
    image: str
