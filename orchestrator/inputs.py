"""
Module 12 - Block Data Sources

Defines the source protocol the pipeline reads signed blocks from, and
two implementations:

- FixtureDataSource: <root>/<height>/signed_block.json in RPC JSON
- InMemoryDataSource: blocks held in a dict, for tests and callers that
  fetch blocks themselves

Fetching from a live RPC endpoint is outside this package; whatever does
it can write fixture directories or fill an InMemoryDataSource.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Iterable, Protocol, runtime_checkable

from bridge_core.schemas.commit import SignedBlock
from bridge_core.schemas.errors import DataSourceException, MalformedInputException
from bridge_core.schemas.header import HeaderFields

from orchestrator.rpc_json import signed_block_from_json, signed_block_to_json


logger = logging.getLogger(__name__)


SIGNED_BLOCK_FILE = "signed_block.json"


@runtime_checkable
class BlockDataSource(Protocol):
    """Protocol defining the block source interface."""

    source_id: str

    def signed_block(self, height: int) -> SignedBlock:
        """
        Load the header, commit and validator set at a height.

        Raises:
            DataSourceException: The block is not available
            MalformedInputException: The block data does not decode
        """
        ...

    def header(self, height: int) -> HeaderFields:
        ...


class FixtureDataSource:
    """
    Reads signed blocks from a fixture directory.

    Layout:
        <root>/<height>/signed_block.json
    """

    source_id = "fixtures"

    def __init__(self, root: str | Path):
        self.root = Path(root)
        self._cache: dict[int, SignedBlock] = {}

    def path_for(self, height: int) -> Path:
        return self.root / str(height) / SIGNED_BLOCK_FILE

    def signed_block(self, height: int) -> SignedBlock:
        if height in self._cache:
            return self._cache[height]

        path = self.path_for(height)
        if not path.is_file():
            raise DataSourceException(f"No fixture for height {height} at {path}", height=height)

        logger.debug(f"Reading {path}")
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            raise DataSourceException(
                f"Could not read fixture {path}: {e}", height=height
            ) from e

        block = signed_block_from_json(data)
        if block.height != height:
            raise MalformedInputException(
                f"Fixture {path} holds height {block.height}, expected {height}"
            )
        self._cache[height] = block
        return block

    def header(self, height: int) -> HeaderFields:
        return self.signed_block(height).header

    def available_heights(self) -> list[int]:
        """Heights with a fixture file, ascending."""
        if not self.root.is_dir():
            return []
        return sorted(
            int(entry.name)
            for entry in self.root.iterdir()
            if entry.name.isdigit() and (entry / SIGNED_BLOCK_FILE).is_file()
        )


class InMemoryDataSource:
    """Signed blocks held in memory, keyed by height."""

    source_id = "memory"

    def __init__(self, blocks: Iterable[SignedBlock] = ()):
        self._blocks: dict[int, SignedBlock] = {}
        for block in blocks:
            self.add(block)

    def add(self, block: SignedBlock) -> None:
        self._blocks[block.height] = block

    def signed_block(self, height: int) -> SignedBlock:
        try:
            return self._blocks[height]
        except KeyError:
            raise DataSourceException(f"Block {height} not loaded", height=height) from None

    def header(self, height: int) -> HeaderFields:
        return self.signed_block(height).header


def load_headers(source: BlockDataSource, start: int, end: int) -> list[HeaderFields]:
    """Headers for heights start..end inclusive."""
    if end <= start:
        raise MalformedInputException(f"End height {end} must be greater than start {start}")
    return [source.header(height) for height in range(start, end + 1)]


def write_fixture(root: str | Path, block: SignedBlock) -> Path:
    """Write a signed block where FixtureDataSource will find it."""
    path = Path(root) / str(block.height) / SIGNED_BLOCK_FILE
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(signed_block_to_json(block), indent=2), encoding="utf-8")
    return path


__all__ = [
    "SIGNED_BLOCK_FILE",
    "BlockDataSource",
    "FixtureDataSource",
    "InMemoryDataSource",
    "load_headers",
    "write_fixture",
]
