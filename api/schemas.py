from __future__ import annotations

from typing import List

from pydantic import BaseModel, Field


class ShipmentFiltersModel(BaseModel):
    vendor: str = "ALL"
    origin: str = "ALL"
    season: str = "ALL"
    search_text: str = ""


class MetaFilesResponse(BaseModel):
    files: List[str] = Field(default_factory=list)


class MetaOptionsResponse(BaseModel):
    vendors: List[str] = Field(default_factory=list)
    origins: List[str] = Field(default_factory=list)
    seasons: List[str] = Field(default_factory=list)
