"""
Core Game
=========

Main game orchestrator combining board, ledger, spawner, placement, scoring
and rules behind a small run/pause/game-over state machine.
"""

from __future__ import annotations

import logging
import random
from dataclasses import dataclass
from enum import Enum, IntEnum
from typing import Any, Dict, List, Optional

from kube_tetris.engine.board import Board, MoveResult
from kube_tetris.engine.catalog import PieceCatalog
from kube_tetris.engine.config_loader import GameConfig, get_config
from kube_tetris.engine.constraints import ConstraintSet
from kube_tetris.engine.high_scores import HighScoreEntry, HighScoreStore, qualifies
from kube_tetris.engine.ledger import NodeLedger
from kube_tetris.engine.pieces import Piece
from kube_tetris.engine.placement import PlacementEngine, PlacementOutcome
from kube_tetris.engine.rng import Spawner
from kube_tetris.engine.rules import TerminationResult, TerminationRules
from kube_tetris.engine.scoring import ScoreTracker
from kube_tetris.engine.state_snapshot import GameSnapshot, SnapshotBuilder

logger = logging.getLogger(__name__)


class GameState(str, Enum):
    IDLE = "idle"
    RUNNING = "running"
    PAUSED = "paused"
    GAME_OVER = "game_over"


class Command(IntEnum):
    """Discrete commands produced by the input layer."""
    MOVE_LEFT = 0
    MOVE_RIGHT = 1
    HARD_DROP = 2
    TOGGLE_PAUSE_OR_START = 3


@dataclass
class StepResult:
    """Result of a tick or a command."""
    snapshot: GameSnapshot
    state: GameState
    moved: bool
    placement: Optional[PlacementOutcome]
    delta_score: int
    terminated: bool
    termination_reason: str
    termination_message: str


class CoreGame:
    """
    Main game simulation class.

    Orchestrates:
    - Board and node ledger
    - Spawner (RNG)
    - Placement, scoring and constraints
    - Termination rules
    - State snapshots and high scores

    States: idle -> running <-> paused, running -> game_over. Game over is
    terminal until reset().
    """

    def __init__(
        self,
        config: Optional[GameConfig] = None,
        seed: Optional[int] = None,
        high_scores: Optional[HighScoreStore] = None
    ):
        """
        Initialize game.

        Args:
            config: Game configuration. Uses default if None.
            seed: Random seed for reproducibility.
            high_scores: Optional persistence for the high-score table.
        """
        if config is None:
            config = get_config()

        self._config = config
        self._seed = seed
        self._high_scores = high_scores

        self._catalog = PieceCatalog(config)
        self._board = Board(config)
        self._scorer = ScoreTracker(config)
        self._rules = TerminationRules(config)
        self._snapshot_builder = SnapshotBuilder(config)

        spawner_rng, ledger_rng, constraint_rng = self._subsystem_rngs(seed)
        self._spawner = Spawner(config, self._catalog, rng=spawner_rng)
        self._ledger = NodeLedger(config, rng=ledger_rng)
        self._constraints = ConstraintSet(config, rng=constraint_rng)
        self._placement = PlacementEngine(
            board=self._board,
            ledger=self._ledger,
            scorer=self._scorer,
            constraints=self._constraints,
            config=config,
        )

        self._state = GameState.IDLE
        self._current: Optional[Piece] = None
        self._next: Optional[Piece] = None
        self._termination = TerminationResult.none()
        self._high_score_table: List[HighScoreEntry] = []
        self._is_new_high_score = False

    @staticmethod
    def _subsystem_rngs(seed: Optional[int]):
        """Independent, reproducible generators for spawner, ledger and constraints."""
        master = random.Random(seed)
        return tuple(random.Random(master.getrandbits(64)) for _ in range(3))

    # ------------------------------------------------------------------
    # Properties
    # ------------------------------------------------------------------

    @property
    def config(self) -> GameConfig:
        return self._config

    @property
    def state(self) -> GameState:
        return self._state

    @property
    def board(self) -> Board:
        return self._board

    @property
    def ledger(self) -> NodeLedger:
        return self._ledger

    @property
    def catalog(self) -> PieceCatalog:
        return self._catalog

    @property
    def spawner(self) -> Spawner:
        return self._spawner

    @property
    def constraints(self) -> ConstraintSet:
        return self._constraints

    @property
    def placement(self) -> PlacementEngine:
        return self._placement

    @property
    def score(self) -> int:
        return self._scorer.score

    @property
    def level(self) -> int:
        return self._scorer.level

    @property
    def current_piece(self) -> Optional[Piece]:
        return self._current

    @property
    def next_piece(self) -> Optional[Piece]:
        return self._next

    @property
    def is_over(self) -> bool:
        return self._state is GameState.GAME_OVER

    @property
    def termination(self) -> TerminationResult:
        return self._termination

    @property
    def tick_interval_ms(self) -> int:
        """Gravity interval; constant for the whole run."""
        return self._config.board.tick_interval_ms

    @property
    def is_new_high_score(self) -> bool:
        """Set at game over when the final score enters the table."""
        return self._is_new_high_score

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def reset(self, seed: Optional[int] = None) -> GameSnapshot:
        """
        Reinitialize board, ledger, score and level and return to idle.

        Args:
            seed: New random seed. Uses previous if None.

        Returns:
            Initial game snapshot.
        """
        if seed is not None:
            self._seed = seed

        spawner_rng, ledger_rng, constraint_rng = self._subsystem_rngs(self._seed)
        self._board.reset()
        self._ledger.initialize(ledger_rng)
        self._scorer.reset()
        self._spawner = Spawner(self._config, self._catalog, rng=spawner_rng)
        self._constraints = ConstraintSet(self._config, rng=constraint_rng)
        self._placement = PlacementEngine(
            board=self._board,
            ledger=self._ledger,
            scorer=self._scorer,
            constraints=self._constraints,
            config=self._config,
        )

        self._state = GameState.IDLE
        self._current = None
        self._next = None
        self._termination = TerminationResult.none()
        self._is_new_high_score = False
        logger.info("Game reset (seed=%s)", self._seed)
        return self.snapshot()

    def start(self) -> bool:
        """
        Leave idle: spawn the current and next pieces and start running.

        Returns:
            True if the game started.
        """
        if self._state is not GameState.IDLE:
            return False

        if self._high_scores is not None:
            self._high_score_table = self._high_scores.load()

        self._constraints.rotate()
        self._current = self._spawner.spawn()
        self._next = self._spawner.spawn()
        self._state = GameState.RUNNING
        logger.info("Game started with %r", self._current)

        self._check_spawn()
        return True

    def toggle_pause_or_start(self) -> GameState:
        """Start from idle, otherwise flip between running and paused."""
        if self._state is GameState.IDLE:
            self.start()
        elif self._state is GameState.RUNNING:
            self._state = GameState.PAUSED
            logger.info("Game paused")
        elif self._state is GameState.PAUSED:
            self._state = GameState.RUNNING
            logger.info("Game resumed")
        return self._state

    # ------------------------------------------------------------------
    # Actions
    # ------------------------------------------------------------------

    def move_left(self) -> bool:
        return self._shift(-1)

    def move_right(self) -> bool:
        return self._shift(1)

    def _shift(self, d_col: int) -> bool:
        if self._state is not GameState.RUNNING:
            return False
        return self._board.move(self._current, d_col, 0) is MoveResult.MOVED

    def tick(self) -> StepResult:
        """
        Apply gravity once; a blocked fall places the piece.

        Ignored unless running, so pausing suspends descent.
        """
        if self._state is not GameState.RUNNING:
            return self._result(moved=False, placement=None, score_before=self.score)

        score_before = self.score
        if self._board.move(self._current, 0, 1) is MoveResult.MOVED:
            return self._result(moved=True, placement=None, score_before=score_before)
        outcome = self._place_current()
        return self._result(moved=False, placement=outcome, score_before=score_before)

    def hard_drop(self) -> StepResult:
        """Drop the current piece to its landing row and place it."""
        if self._state is not GameState.RUNNING:
            return self._result(moved=False, placement=None, score_before=self.score)

        score_before = self.score
        landing_row = self._board.find_landing_row(self._current)
        moved = landing_row != self._current.row
        self._current.row = landing_row
        outcome = self._place_current()
        return self._result(moved=moved, placement=outcome, score_before=score_before)

    def handle(self, command: Command) -> StepResult:
        """Apply one input command immediately."""
        command = Command(command)
        score_before = self.score
        if command is Command.MOVE_LEFT:
            return self._result(moved=self.move_left(), placement=None, score_before=score_before)
        if command is Command.MOVE_RIGHT:
            return self._result(moved=self.move_right(), placement=None, score_before=score_before)
        if command is Command.HARD_DROP:
            return self.hard_drop()
        self.toggle_pause_or_start()
        return self._result(moved=False, placement=None, score_before=score_before)

    def replace_current(self, piece: Piece) -> None:
        """
        Swap in a specific current piece (scripted scenarios and tools).

        Raises:
            RuntimeError: If the game is not running.
        """
        if self._state is not GameState.RUNNING:
            raise RuntimeError(f"Cannot replace the current piece while {self._state.value}")
        self._current = piece

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _place_current(self) -> PlacementOutcome:
        """Place, then promote the next piece and check for overflow."""
        level_before = self._scorer.level
        outcome = self._placement.place(self._current)

        if outcome.rejected:
            self._end(outcome.termination)
            return outcome

        if self._scorer.level != level_before:
            active = self._constraints.rotate()
            logger.info("Level %d reached; active constraints: %s", self._scorer.level, active)

        self._current = self._next
        self._next = self._spawner.spawn()
        self._check_spawn()
        return outcome

    def _check_spawn(self) -> None:
        termination = self._rules.check_spawn(self._board, self._current)
        if termination.terminated:
            self._end(termination)

    def _end(self, termination: TerminationResult) -> None:
        self._state = GameState.GAME_OVER
        self._termination = termination
        if self._high_scores is not None:
            self._is_new_high_score = qualifies(
                self._high_score_table, self.score, self._high_scores.max_entries
            )
        logger.info("Game over (%s): %s Final score %d", termination.reason, termination.message, self.score)

    def record_high_score(self, name: str) -> List[HighScoreEntry]:
        """
        Save the final score under a player name.

        Raises:
            RuntimeError: If the game is not over or no store is configured.
            ValueError: If the name is blank.
        """
        if self._state is not GameState.GAME_OVER:
            raise RuntimeError("High scores are recorded only at game over")
        if self._high_scores is None:
            raise RuntimeError("No high score store configured")
        name = name.strip()
        if not name:
            raise ValueError("Player name must not be empty")
        self._high_score_table = self._high_scores.record(name, self.score, self.level)
        self._is_new_high_score = False
        return list(self._high_score_table)

    def _result(
        self,
        moved: bool,
        placement: Optional[PlacementOutcome],
        score_before: int
    ) -> StepResult:
        return StepResult(
            snapshot=self.snapshot(),
            state=self._state,
            moved=moved,
            placement=placement,
            delta_score=self.score - score_before,
            terminated=self.is_over,
            termination_reason=self._termination.reason,
            termination_message=self._termination.message,
        )

    def snapshot(self) -> GameSnapshot:
        """Read-only view for renderers."""
        return self._snapshot_builder.build(
            board=self._board,
            ledger=self._ledger,
            current=self._current,
            upcoming=self._next,
            state=self._state.value,
            score=self.score,
            level=self.level,
            active_constraints=tuple(c.description for c in self._constraints.active),
            termination_reason=self._termination.reason,
            termination_message=self._termination.message,
        )

    def get_info(self) -> Dict[str, Any]:
        """Get additional info dict for Gymnasium."""
        return {
            "score": self.score,
            "level": self.level,
            "state": self._state.value,
            "pieces_spawned": self._spawner.spawned_count,
            "lines_cleared": self._scorer.lines_cleared,
            "pods_placed": self._scorer.placements,
            "node_status": [status.level for status in self._ledger.node_status()],
            "terminated_reason": self._termination.reason,
            "terminated_message": self._termination.message,
        }
