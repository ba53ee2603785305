"""
Pydantic models for pagination and ordering, plus the result containers.

Input models mirror the GraphQL input objects (CursorInput, PageInput,
OffsetInput, PaginationInput); output models back PageInfo,
PaginationInfo, Connection and Edge.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Any, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict


class OrderDirection(str, enum.Enum):
    """Values of the shared OrderByEnum."""
    ASC = "Asc"
    DESC = "Desc"


# --- Normalized types (internal representation) ---

class NormalizedOrder(BaseModel):
    """
    Normalized order representation.

    Input: {"lastName": ASC}
    Normalized: NormalizedOrder(field="last_name", dir="asc")
    """
    field: str  # column name
    dir: Literal["asc", "desc"]


# --- Pagination inputs (from client) ---

class CursorInput(BaseModel):
    """Keyset pagination: rows strictly after ``cursor``."""
    cursor: Optional[str] = None
    limit: int


class PageInput(BaseModel):
    """Page pagination with 0-based ``page``."""
    page: int
    limit: int


class OffsetInput(BaseModel):
    """Offset pagination."""
    offset: int
    limit: int


class PaginationInput(BaseModel):
    """
    One-of wrapper over the three pagination strategies.

    Exactly one of the fields is expected; validation happens in the
    pagination compiler so that the error surfaces as InvalidPagination.
    """
    model_config = ConfigDict(extra="forbid")

    cursor: Optional[CursorInput] = None
    page: Optional[PageInput] = None
    offset: Optional[OffsetInput] = None

    def variants(self) -> list[Union[CursorInput, PageInput, OffsetInput]]:
        """Present variants in declaration order."""
        return [v for v in (self.cursor, self.page, self.offset) if v is not None]


# --- Result containers ---

class PageInfo(BaseModel):
    """Boundary metadata of a result page."""
    has_previous_page: bool = False
    has_next_page: bool = False
    start_cursor: Optional[str] = None
    end_cursor: Optional[str] = None


class PaginationInfo(BaseModel):
    """Page arithmetic of a counted result page."""
    pages: int
    current: int
    offset: int
    total: int


@dataclass
class Edge:
    """One row of a connection and its cursor."""
    cursor: str
    node: dict[str, Any]


@dataclass
class Connection:
    """
    A page of rows with boundary metadata.

    start_cursor/end_cursor in page_info always match the first/last edge.
    """
    edges: list[Edge] = field(default_factory=list)
    page_info: PageInfo = field(default_factory=PageInfo)
    pagination_info: Optional[PaginationInfo] = None

    @property
    def nodes(self) -> list[dict[str, Any]]:
        return [edge.node for edge in self.edges]

    @classmethod
    def from_rows(
        cls,
        rows: list[dict[str, Any]],
        cursors: list[str],
        has_previous_page: bool,
        has_next_page: bool,
        pagination_info: Optional[PaginationInfo] = None,
    ) -> Connection:
        edges = [Edge(cursor=cursor, node=row) for row, cursor in zip(rows, cursors)]
        page_info = PageInfo(
            has_previous_page=has_previous_page,
            has_next_page=has_next_page,
            start_cursor=edges[0].cursor if edges else None,
            end_cursor=edges[-1].cursor if edges else None,
        )
        return cls(edges=edges, page_info=page_info, pagination_info=pagination_info)
