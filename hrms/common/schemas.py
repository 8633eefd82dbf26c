"""Base class for partial-update (PUT) payloads."""


from typing import Any, ClassVar

from pydantic import BaseModel, ValidationInfo, field_validator


class PartialUpdate(BaseModel):
    """
    Every field is optional and only supplied fields are changed.

    Fields listed in ``not_null`` back NOT NULL columns: omitting them is
    fine, but an explicit ``null`` is rejected with a 422.
    """

    not_null: ClassVar[tuple[str, ...]] = ()

    @field_validator("*")
    @classmethod
    def _reject_explicit_null(cls, value: Any, info: ValidationInfo) -> Any:
        if value is None and info.field_name in cls.not_null:
            raise ValueError(f"{info.field_name} cannot be null")
        return value
