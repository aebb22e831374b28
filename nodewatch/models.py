"""Data model for headers observed on monitored nodes."""
from enum import IntEnum
from typing import Any, Dict

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .exceptions import EmptyResponseError


def normalize_hash(value: str) -> str:
    """Return a lower-case, 0x-prefixed hex hash."""
    value = value.strip().lower()
    if not value.startswith("0x"):
        value = "0x" + value
    return value


def parse_quantity(value: Any) -> int:
    """Parse a JSON-RPC hex quantity (or a plain int) into an int."""
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        return int(value, 16) if value.lower().startswith("0x") else int(value)
    raise ValueError(f"Not a quantity: {value!r}")


class NodeStatus(IntEnum):
    """Health status of a monitored node, as reported to the dashboard."""
    OK = 0
    UNREACHABLE = 1


class BlockInfo(BaseModel):
    """
    Immutable snapshot of one header as reported by one node.

    Identity is (number, hash). A refetch after a reorg produces a new
    BlockInfo rather than editing the old one.
    """

    model_config = ConfigDict(frozen=True)

    number: int = Field(ge=0)
    hash: str
    parent_hash: str

    @field_validator("hash", "parent_hash")
    @classmethod
    def _normalize(cls, value: str) -> str:
        return normalize_hash(value)

    @classmethod
    def from_header(cls, header: Dict[str, Any]) -> "BlockInfo":
        """
        Build a BlockInfo from a raw eth_getBlockByNumber result.

        Raises:
            EmptyResponseError: If the header lacks number, hash or parentHash
        """
        try:
            return cls(
                number=parse_quantity(header["number"]),
                hash=header["hash"],
                parent_hash=header["parentHash"],
            )
        except (KeyError, TypeError, ValueError) as e:
            raise EmptyResponseError(f"Malformed header: {e}") from e

    def formatted_hash(self) -> str:
        """Full hash as shown in report cells."""
        return self.hash

    def terminal_string(self) -> str:
        """Short form for terminal output: number and abbreviated hash."""
        h = self.hash
        if len(h) == 66:
            h = f"{h[2:8]}..{h[-6:]}"
        return f"{self.number} [{h}]"
