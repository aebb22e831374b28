"""Per-node record of the last header seen at each height."""
from typing import Dict, List, Optional

from .models import BlockInfo


class ChainHistory:
    """
    Mapping from block number to the most recent BlockInfo a node reported there.

    Holds at most one entry per height. Entries only leave through
    invalidate(), which the reorg walk calls when an ancestor turns out stale.
    Growth is bounded by the heights actually queried for the node.
    """

    def __init__(self):
        self._blocks: Dict[int, BlockInfo] = {}

    def get(self, height: int) -> Optional[BlockInfo]:
        return self._blocks.get(height)

    def put(self, info: BlockInfo) -> None:
        """Store info at its height, replacing whatever was there."""
        self._blocks[info.number] = info

    def invalidate(self, height: int) -> Optional[BlockInfo]:
        """Drop the entry at height and return it, if any."""
        return self._blocks.pop(height, None)

    def heights(self) -> List[int]:
        return sorted(self._blocks)

    def __contains__(self, height: int) -> bool:
        return height in self._blocks

    def __len__(self) -> int:
        return len(self._blocks)
