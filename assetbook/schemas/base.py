"""
Base schema classes shared by the asset, ledger and schedule schemas.

Response schemas that are built from ORM rows (Asset, DepreciationEntry,
DepreciationScheduleSetting) inherit from BaseResponseSchema so
``model_validate(row)`` reads attributes directly.
"""

from pydantic import BaseModel, ConfigDict


class BaseResponseSchema(BaseModel):
    """
    Base for schemas read from ORM objects or dataclasses.

    Usage:
        class AssetResponse(BaseResponseSchema):
            id: UUID
            asset_tag: str
    """
    model_config = ConfigDict(
        from_attributes=True,
        populate_by_name=True,
    )


class BaseCreateSchema(BaseModel):
    """Base for request bodies; unknown keys from the client are dropped."""
    model_config = ConfigDict(extra='ignore')


class BaseUpdateSchema(BaseModel):
    """
    Base for partial updates.

    Every field is optional; endpoints apply only what was sent
    (``model_dump(exclude_unset=True)``).
    """
    model_config = ConfigDict(extra='ignore')
