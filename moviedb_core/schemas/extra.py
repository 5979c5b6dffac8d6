"""
MovieDB extra schemas
"""

from typing import List

import pydantic


__all__ = ["Versions"]


class Versions(pydantic.BaseModel):
    class Version(pydantic.BaseModel):
        version: pydantic.PositiveInt
        prefix: pydantic.constr(min_length=2)
        media_type: str

    latest: pydantic.PositiveInt
    versions: List[Version]
