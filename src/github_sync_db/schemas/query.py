"""Pydantic schemas for the collection read layer.

Sort and filter models follow the data-grid wire shape (``colId``,
``filterType``, ``filterTo``) so they can be passed through unchanged.
"""

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field


class FieldDef(BaseModel):
    """Column description for grid rendering."""

    model_config = ConfigDict(populate_by_name=True)

    field: str
    type: str
    header_name: str = Field(alias="headerName")

    @classmethod
    def for_column(cls, name: str, type_name: str) -> "FieldDef":
        header = name[:1].upper() + name[1:].replace("_", " ")
        return cls(field=name, type=type_name, header_name=header)


class SortItem(BaseModel):
    """One entry of a sort model."""

    model_config = ConfigDict(populate_by_name=True)

    col_id: str = Field(alias="colId")
    sort: Literal["asc", "desc"] = "asc"


class FilterCondition(BaseModel):
    """Filter applied to one field.

    ``type`` and ``filterType`` are interchangeable; ``type`` wins when both
    are given.
    """

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    type: str | None = None
    filter_type: str | None = Field(default=None, alias="filterType")
    filter: Any = None
    filter_to: Any = Field(default=None, alias="filterTo")

    @property
    def operator(self) -> str | None:
        return self.type or self.filter_type

    @property
    def has_value(self) -> bool:
        return "filter" in self.model_fields_set


class Page(BaseModel):
    """One page of a collection query."""

    model_config = ConfigDict(populate_by_name=True)

    data: list[dict[str, Any]]
    total: int
    page: int
    page_size: int = Field(alias="pageSize")
    total_pages: int = Field(alias="totalPages")
    fields: list[str]


class SearchHit(BaseModel):
    """Global search result for one collection."""

    count: int = 0
    data: list[dict[str, Any]] = Field(default_factory=list)
