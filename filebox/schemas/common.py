from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Serialized with camelCase keys; accepts either spelling on input."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


class ResponseMessage(CamelModel):
    message: str = Field(description="A human readable status message.")


class HTTPError(CamelModel):
    """Envelope returned for every 4xx/5xx response."""

    status_code: int
    error: str
    message: str
