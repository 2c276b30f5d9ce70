# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Table extraction: header row + data rows of processed cells.

Header priority:
  1. first row of an explicit <thead> (its th/td cells)
  2. else the first body row, when it carries <th> cells of this table;
     that row is then excluded from the data rows

Cell content comes from the node processor, passed in as ``process_cell``
so this module stays free of the processor's recursion.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from enum import StrEnum

from pagetree import SimplifiedNode
from pagetree.classify import is_visible
from pagetree.snapshot import RawNode

logger = logging.getLogger(__name__)

_CELL_TAGS = ("th", "td")

CellProcessor = Callable[[RawNode], list[SimplifiedNode]]


class RowMode(StrEnum):
    """How many data rows a table keeps."""

    ALL = "all"
    FIRST = "first"  # historical output: only the first produced data row


def _children_by_tag(node: RawNode, tag: str) -> list[RawNode]:
    return [c for c in node.element_children() if c.tag == tag and is_visible(c)]


def _row_cells(row: RawNode, tags: tuple[str, ...] = _CELL_TAGS) -> list[RawNode]:
    # Direct children only: cells of nested tables belong to those tables
    return [c for c in row.element_children() if c.tag in tags]


def _process_cells(cells: list[RawNode], process_cell: CellProcessor) -> list[SimplifiedNode]:
    # Cells bypass the collapse pass, so tag-only nodes are dropped here
    out: list[SimplifiedNode] = []
    for cell in cells:
        out.extend(node for node in process_cell(cell) if not node.is_degenerate)
    return out


def extract_table(
    table: RawNode,
    process_cell: CellProcessor,
    *,
    row_mode: RowMode = RowMode.ALL,
) -> SimplifiedNode:
    """Build a table-shaped node from a <table> element.

    ``header`` and ``rows`` are set only when non-empty; a table that yields
    neither is degenerate and is dropped later by the collapse pass.
    """
    thead = next(iter(_children_by_tag(table, "thead")), None)
    tbodies = _children_by_tag(table, "tbody")

    if tbodies:
        body_rows = [row for tbody in tbodies for row in _children_by_tag(tbody, "tr")]
    else:
        body_rows = _children_by_tag(table, "tr")

    header: list[SimplifiedNode] = []
    if thead is not None:
        head_rows = _children_by_tag(thead, "tr")
        if head_rows:
            header = _process_cells(_row_cells(head_rows[0]), process_cell)
    elif body_rows:
        th_cells = _row_cells(body_rows[0], ("th",))
        if th_cells:
            header = _process_cells(th_cells, process_cell)
            body_rows = body_rows[1:]

    rows: list[list[SimplifiedNode]] = []
    for row in body_rows:
        cells = _process_cells(_row_cells(row), process_cell)
        if not cells:
            continue
        rows.append(cells)
        if row_mode is RowMode.FIRST:
            break

    logger.debug("Table extracted: header=%d cells, rows=%d (mode=%s)", len(header), len(rows), row_mode)
    return SimplifiedNode.table(header=header, rows=rows)
