"""
Shared API schema base.

The dashboard speaks camelCase JSON (`deleteReason`, `isArchived`,
`totalAmount`); models are declared in snake_case and aliased on the wire.
"""

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


class CountResponse(BaseModel):
    count: int
