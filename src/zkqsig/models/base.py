"""Base Pydantic model configuration for zkqsig persisted structures.

All zkqsig models inherit from ZKQBaseModel to ensure consistent behavior:
- Immutability (frozen=True); a manifest or trust list is never edited in place
- Strict validation (extra="forbid") to catch typos and injected fields
- camelCase JSON aliases, with snake_case attribute names also accepted
"""

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class ZKQBaseModel(BaseModel):
    """Base model for all zkqsig persisted entities.

    Example:
        >>> class Sample(ZKQBaseModel):
        ...     doc_hash: str
        >>> Sample(docHash="ab").model_dump(by_alias=True)
        {'docHash': 'ab'}
    """

    model_config = ConfigDict(
        frozen=True,
        extra="forbid",
        alias_generator=to_camel,
        populate_by_name=True,
        use_enum_values=False,
        validate_default=True,
        json_schema_extra={
            "additionalProperties": False,
        },
    )

    def to_json_dict(self) -> dict:
        """JSON-compatible dict with camelCase keys (the on-disk shape)."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)
