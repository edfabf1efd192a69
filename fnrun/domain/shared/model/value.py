from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class ValueObject(BaseModel):
    model_config = ConfigDict(frozen=True)


class DescriptorModel(BaseModel):
    """Frozen model read from the camelCase function descriptor.

    Unknown fields are ignored, fields may be populated by alias or by name.
    """

    model_config = ConfigDict(
        frozen=True,
        extra="ignore",
        alias_generator=to_camel,
        populate_by_name=True,
    )
