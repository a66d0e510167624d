"""
Base model configuration shared by all engine models.

The external definition store and downstream collaborators exchange
camelCase JSON (``resourceId``, ``propertyPath``); Python code uses
snake_case attribute names. Both spellings are accepted on input.
"""

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class EngineModel(BaseModel):
    """Immutable base model with camelCase aliases."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
        use_enum_values=False,
    )

    def to_json_dict(self) -> dict:
        """Dump to a JSON-safe dict using the external (camelCase) field names."""
        return self.model_dump(mode="json", by_alias=True)
