"""
Board
=====

Grid occupancy, movement validity, landing resolution and line clearing.

Row 0 is the top. The bottom row holds one node cell per column for the
lifetime of a run and is never cleared or overwritten.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum
from typing import List, Optional, Union

import numpy as np

from kube_tetris.engine.catalog import PieceCategory
from kube_tetris.engine.config_loader import GameConfig, get_config
from kube_tetris.engine.pieces import Piece

# Occupancy codes used in snapshots
CELL_EMPTY = 0
CELL_POD = 1
CELL_UPGRADE = 2
CELL_NODE = 3


@dataclass(frozen=True)
class NodeCell:
    """Permanent bottom-row cell standing for a node."""
    node_index: int


@dataclass(frozen=True)
class LandedCell:
    """A piece that came to rest above a node without reaching it."""
    piece: Piece


Cell = Optional[Union[NodeCell, LandedCell]]


class MoveResult(IntEnum):
    MOVED = 0
    BLOCKED = 1


@dataclass(frozen=True)
class LandingTarget:
    """Where a descending piece ends up."""
    row: int
    node_index: Optional[int] = None    # Set when the piece applies to a node

    @property
    def is_node(self) -> bool:
        return self.node_index is not None


class Board:
    """Fixed-size grid with a permanent node row at the bottom."""

    def __init__(self, config: Optional[GameConfig] = None):
        if config is None:
            config = get_config()

        self._config = config
        self.width = config.board.width
        self.height = config.board.height
        self._cells: List[List[Cell]] = []
        self.reset()

    def reset(self) -> None:
        """Empty every row and rebuild the node row."""
        self._cells = [self._empty_row() for _ in range(self.height - 1)]
        self._cells.append([NodeCell(node_index=col) for col in range(self.width)])

    def _empty_row(self) -> List[Cell]:
        return [None] * self.width

    @property
    def node_row(self) -> int:
        return self.height - 1

    # ------------------------------------------------------------------
    # Cell access
    # ------------------------------------------------------------------

    def in_bounds(self, col: int, row: int) -> bool:
        return 0 <= col < self.width and 0 <= row < self.height

    def cell_at(self, col: int, row: int) -> Cell:
        if not self.in_bounds(col, row):
            raise IndexError(f"Cell ({col}, {row}) is outside the {self.width}x{self.height} board")
        return self._cells[row][col]

    def is_landed(self, col: int, row: int) -> bool:
        return isinstance(self.cell_at(col, row), LandedCell)

    def is_node(self, col: int, row: int) -> bool:
        return isinstance(self.cell_at(col, row), NodeCell)

    def occupy(self, piece: Piece, row: int) -> None:
        """
        Commit a piece as a landed cell at its column.

        Raises:
            ValueError: If the target is the node row or already occupied.
        """
        col = piece.col
        if row == self.node_row:
            raise ValueError(f"Cannot occupy node cell at column {col}")
        if self.cell_at(col, row) is not None:
            raise ValueError(f"Cell ({col}, {row}) is already occupied")
        self._cells[row][col] = LandedCell(piece=piece)
        piece.row = row

    # ------------------------------------------------------------------
    # Movement
    # ------------------------------------------------------------------

    def is_valid_position(self, piece: Piece, col: int, row: int) -> bool:
        """
        True if every footprint cell is on the board and not landed.

        Rows above the top are valid (pieces start there); node cells do not
        block movement.
        """
        for d_col, d_row in piece.footprint:
            x = col + d_col
            y = row + d_row
            if x < 0 or x >= self.width or y >= self.height:
                return False
            if y >= 0 and isinstance(self._cells[y][x], LandedCell):
                return False
        return True

    def move(self, piece: Piece, d_col: int, d_row: int) -> MoveResult:
        """
        Shift a piece if the destination is valid.

        A BLOCKED result for a downward move means the piece must be placed.
        """
        new_col = piece.col + d_col
        new_row = piece.row + d_row
        if self.is_valid_position(piece, new_col, new_row):
            piece.col = new_col
            piece.row = new_row
            return MoveResult.MOVED
        return MoveResult.BLOCKED

    def find_landing_row(self, piece: Piece) -> int:
        """Deepest row the piece reaches by falling straight down."""
        row = piece.row
        while self.is_valid_position(piece, piece.col, row + 1):
            row += 1
        return row

    def resolve_landing_target(self, col: int, start_row: int) -> LandingTarget:
        """
        Walk down a column to find where a piece comes to rest.

        Reaching a node cell means the piece applies to that node; reaching a
        landed cell means the piece occupies the row above it.
        """
        row = max(start_row, 0)
        while row < self.height:
            cell = self._cells[row][col]
            if isinstance(cell, NodeCell):
                return LandingTarget(row=row, node_index=cell.node_index)
            if isinstance(cell, LandedCell):
                return LandingTarget(row=row - 1)
            row += 1
        # Unreachable while the node row is intact
        return LandingTarget(row=self.node_row, node_index=col)

    # ------------------------------------------------------------------
    # Line clearing
    # ------------------------------------------------------------------

    def is_row_full(self, row: int) -> bool:
        """True if a non-node row holds a landed cell in every column."""
        if row == self.node_row:
            return False
        return all(isinstance(cell, LandedCell) for cell in self._cells[row])

    def clear_row(self, row: int) -> None:
        """Remove a row and insert an empty one at the top."""
        if row == self.node_row:
            raise ValueError("The node row is never cleared")
        del self._cells[row]
        self._cells.insert(0, self._empty_row())
        for y in range(row + 1):
            for cell in self._cells[y]:
                if isinstance(cell, LandedCell):
                    cell.piece.row = y

    def clear_full_rows(self) -> int:
        """
        Clear every full row, bottom up.

        The same index is re-checked after a clear because the content above
        shifts into it.

        Returns:
            Number of rows cleared.
        """
        cleared = 0
        row = self.node_row - 1
        while row >= 0:
            if self.is_row_full(row):
                self.clear_row(row)
                cleared += 1
            else:
                row -= 1
        return cleared

    # ------------------------------------------------------------------
    # Views
    # ------------------------------------------------------------------

    def node_cells(self) -> List[NodeCell]:
        """Cells of the node row."""
        return [cell for cell in self._cells[self.node_row] if isinstance(cell, NodeCell)]

    def landed_count(self) -> int:
        return sum(
            1 for row in self._cells for cell in row if isinstance(cell, LandedCell)
        )

    def column_heights(self) -> np.ndarray:
        """Landed stack height per column, excluding the node row."""
        heights = np.zeros(self.width, dtype=np.int32)
        for col in range(self.width):
            for row in range(self.node_row):
                if isinstance(self._cells[row][col], LandedCell):
                    heights[col] = self.node_row - row
                    break
        return heights

    def occupancy(self) -> np.ndarray:
        """(height, width) int8 grid of cell codes."""
        grid = np.zeros((self.height, self.width), dtype=np.int8)
        for y, row in enumerate(self._cells):
            for x, cell in enumerate(row):
                if isinstance(cell, NodeCell):
                    grid[y, x] = CELL_NODE
                elif isinstance(cell, LandedCell):
                    is_pod = cell.piece.category is PieceCategory.POD
                    grid[y, x] = CELL_POD if is_pod else CELL_UPGRADE
        return grid
