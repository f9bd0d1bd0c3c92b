"""
Core data models

Extension is the user-facing input; ResolvedAnchor and PatchEntry are the
intermediate records passed between the resolvers and the patcher.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class Extension(BaseModel):
    """
    A handler to register into the host's ordered table

    Accepts the original config spelling too:
    {"directive": ..., "import": ..., "after": ...}
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    key: str = Field(..., min_length=1, alias="directive")
    package: str = Field(..., min_length=1, alias="import")
    after: Optional[str] = None


class ResolvedAnchor(BaseModel):
    """Placement of one extension: the key to follow, or None to append"""

    model_config = ConfigDict(frozen=True)

    key: str
    anchor: Optional[str] = None


class PatchEntry(BaseModel):
    """Everything the patcher needs to splice one element"""

    model_config = ConfigDict(frozen=True)

    key: str
    anchor: Optional[str] = None
    package: str
    qualified_name: str
