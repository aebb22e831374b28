"""
Cross-node comparison reports.

A report is a snapshot of what every node says at a fixed list of heights,
plus per-node metadata. Consensus or divergence per height is derived from
the cells; it is not stored.
"""
import json
from concurrent.futures import ThreadPoolExecutor
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

import structlog
from pydantic import BaseModel, ConfigDict, Field

from .models import NodeStatus

logger = structlog.get_logger()


class RowStatus(Enum):
    """Agreement between nodes at one height."""
    EMPTY = "empty"  # No node had data
    SINGLE = "single"  # Exactly one node had data
    CONSENSUS = "consensus"  # Several nodes, one hash
    DIVERGENT = "divergent"  # Several nodes, several hashes


class NodeColumn(BaseModel):
    """Per-node metadata shown above a report column."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    name: str = Field(alias="Name")
    version: str = Field(alias="Version")
    status: NodeStatus = Field(alias="Status")
    last_progress: int = Field(alias="LastProgress")


class Report:
    """One snapshot of the monitored nodes at a list of heights."""

    def __init__(self, numbers: Iterable[int]):
        self.numbers: List[int] = list(dict.fromkeys(numbers))
        self.cols: List[NodeColumn] = []
        self.rows: Dict[int, List[str]] = {num: [] for num in self.numbers}
        self.hashes: List[str] = []

    def add_column(self, column: NodeColumn, cells: Sequence[str]) -> None:
        """Append one node's column; cells are ordered like numbers."""
        if len(cells) != len(self.numbers):
            raise ValueError(f"Expected {len(self.numbers)} cells, got {len(cells)}")
        self.cols.append(column)
        for num, cell in zip(self.numbers, cells):
            self.rows[num].append(cell)
        self._dedup(cells)

    def add_node(self, node) -> None:
        """Query node at every height of the report and add it as a column."""
        column, cells = collect_column(node, self.numbers)
        self.add_column(column, cells)

    def _dedup(self, cells: Iterable[str]) -> None:
        seen = set(self.hashes)
        seen.update(cell for cell in cells if cell)
        self.hashes = sorted(seen)

    def row_status(self, number: int) -> RowStatus:
        values = [cell for cell in self.rows.get(number, []) if cell]
        if not values:
            return RowStatus.EMPTY
        if len(values) == 1:
            return RowStatus.SINGLE
        if len(set(values)) == 1:
            return RowStatus.CONSENSUS
        return RowStatus.DIVERGENT

    def divergent_heights(self) -> List[int]:
        return [num for num in self.numbers if self.row_status(num) == RowStatus.DIVERGENT]

    def to_document(self) -> Dict[str, Any]:
        """The report as served to the dashboard (data.json)."""
        return {
            "Cols": [col.model_dump(by_alias=True, mode="json") for col in self.cols],
            "Rows": {str(num): list(self.rows[num]) for num in self.numbers},
            "Numbers": list(self.numbers),
            "Hashes": list(self.hashes),
        }

    def to_json(self, **kwargs) -> str:
        return json.dumps(self.to_document(), **kwargs)

    def render_table(self) -> str:
        """Markdown table with one row per height and one column per node."""
        names = " | ".join(col.name for col in self.cols)
        lines = [
            f"| number | {names} |",
            "|----" * (len(self.cols) + 1) + "|",
        ]
        for num in self.numbers:
            lines.append(f"| {num} | {' | '.join(self.rows[num])} |")
        return "\n".join(lines)


def collect_column(node, numbers: Sequence[int]) -> Tuple[NodeColumn, List[str]]:
    """Capture node metadata and its hash at each height (empty when unknown)."""
    column = NodeColumn(
        name=node.name,
        version=node.version(),
        status=node.status,
        last_progress=node.last_progress,
    )
    cells = []
    for num in numbers:
        block = node.block_at(num, False)
        cells.append(block.formatted_hash() if block is not None else "")
    return column, cells


def build_report(nodes: Sequence, heights: Iterable[int],
                 max_workers: Optional[int] = None) -> Report:
    """
    Build a report over heights for nodes.

    Nodes are queried in parallel; columns keep the order of nodes.
    A node that cannot answer at some height contributes an empty cell.
    """
    report = Report(heights)
    if not nodes:
        return report

    workers = max_workers or len(nodes)
    with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="report") as pool:
        columns = list(pool.map(lambda node: collect_column(node, report.numbers), nodes))

    for column, cells in columns:
        report.add_column(column, cells)

    divergent = report.divergent_heights()
    if divergent:
        logger.warning("report_divergence", heights=divergent, nodes=len(nodes))
    logger.debug("report_built", heights=len(report.numbers), nodes=len(nodes),
                 hashes=len(report.hashes))
    return report


def render_node(node, heights: Iterable[int]) -> str:
    """Per-node text listing: version heading then one line per height."""
    lines = [f"## {node.version()}"]
    for num in heights:
        block = node.block_at(num, False)
        lines.append(f"{num}: {block.terminal_string() if block is not None else 'n/a'}")
    return "\n".join(lines)
