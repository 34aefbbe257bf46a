"""
Base pydantic model for JSON bodies exchanged with clients

Fields are declared in snake_case and serialized in camelCase, which is what
the existing compliance clients send and expect.
"""
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Model that reads and writes camelCase JSON keys"""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)
