"""
Shared plumbing for input schemas.

Services accept either a schema instance or a plain mapping; ``parse_input``
turns the latter into the former and reports pydantic failures as
``mediahub.core.exceptions.ValidationError`` so callers only ever deal with
one error taxonomy.
"""

from typing import Any, Mapping, TypeVar, Union

import pydantic
from pydantic import BaseModel, ConfigDict

from mediahub.core.exceptions import ValidationError

SchemaT = TypeVar("SchemaT", bound="InputSchema")


class InputSchema(BaseModel):
    """Base for write-side schemas: unknown keys are rejected, text is stripped."""

    model_config = ConfigDict(
        extra="forbid",
        str_strip_whitespace=True,
    )


def parse_input(schema: type[SchemaT], data: Union[SchemaT, Mapping[str, Any]]) -> SchemaT:
    """
    Validate ``data`` against ``schema``.

    Raises:
        ValidationError: with one ``errors`` entry per failing field
    """
    if isinstance(data, schema):
        return data
    try:
        return schema.model_validate(dict(data))
    except pydantic.ValidationError as e:
        errors = [
            {
                "field": ".".join(str(part) for part in error["loc"]) or "__root__",
                "message": error["msg"],
            }
            for error in e.errors()
        ]
        raise ValidationError(
            f"Invalid {schema.__name__}",
            {"errors": errors},
        ) from e
    except TypeError as e:
        raise ValidationError(
            f"Invalid {schema.__name__}",
            {"reason": str(e)},
        ) from e
