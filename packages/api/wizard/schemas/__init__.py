# This project was developed with assistance from AI tools.
"""Shared schema components."""

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Base for models exchanged with the browser: camelCase on the wire."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)
