"""
Gymnasium Environment Wrapper
=============================

Provides a standard Gymnasium interface to the Kube Tetris game.
Reward is always 0.0 - agents compute their own from info.
"""

from __future__ import annotations

from typing import Any, Dict, Optional, Tuple, Union

import numpy as np

import gymnasium as gym
from gymnasium import spaces

from kube_tetris.engine.config_loader import GameConfig, load_config
from kube_tetris.engine.game import Command, CoreGame, GameState
from kube_tetris.engine.resources import DIMENSIONS

ACTION_NONE = 0
ACTION_LEFT = 1
ACTION_RIGHT = 2
ACTION_HARD_DROP = 3

_ACTION_COMMANDS = {
    ACTION_LEFT: Command.MOVE_LEFT,
    ACTION_RIGHT: Command.MOVE_RIGHT,
    ACTION_HARD_DROP: Command.HARD_DROP,
}


class KubeTetrisEnv(gym.Env):
    """
    Kube Tetris pod-scheduling game as a Gymnasium environment.

    Action Space:
        Discrete(4): 0 = no-op, 1 = left, 2 = right, 3 = hard drop.
        Every step applies the action, then one gravity tick unless the
        action already placed the piece.

    Observation Space:
        Dict of board cells, current/next piece and per-node capacities.

    Reward:
        Always 0.0. Agents compute their own reward from the info dict.

    Info:
        Contains score, level, delta_score, lines_cleared, terminated_reason, etc.
    """

    metadata = {"render_modes": []}

    def __init__(
        self,
        config_path: Optional[str] = None,
        max_steps: Optional[int] = None,
        debug: bool = False,
    ):
        """
        Initialize Kube Tetris environment.

        Args:
            config_path: Path to game_config.yaml. Uses default if None.
            max_steps: Truncate episodes after this many steps. None for no limit.
            debug: If True, enables verbose debug output for agent development.
        """
        super().__init__()

        self._config = load_config(config_path)
        self._max_steps = max_steps
        self._debug = debug
        self._steps = 0

        self._game = CoreGame(config=self._config)

        self.action_space = spaces.Discrete(4)
        self.observation_space = self._build_observation_space()

        if self._debug:
            print(f"[DEBUG] KubeTetrisEnv initialized")
            print(f"[DEBUG]   Board: {self._config.board.width}x{self._config.board.height}")
            print(f"[DEBUG]   Piece kinds: {len(self._game.catalog)}")

    def _build_observation_space(self) -> spaces.Dict:
        """Build the observation space definition."""
        board = self._config.board
        num_nodes = self._config.num_nodes
        num_kinds = self._config.num_piece_kinds
        num_dims = len(DIMENSIONS)

        return spaces.Dict({
            "score": spaces.Box(low=0, high=np.iinfo(np.int64).max, shape=(), dtype=np.int64),
            "level": spaces.Box(low=1, high=np.iinfo(np.int32).max, shape=(), dtype=np.int32),
            "cells": spaces.Box(low=0, high=3, shape=(board.height, board.width), dtype=np.int8),
            "column_heights": spaces.Box(low=0, high=board.height, shape=(board.width,), dtype=np.int32),
            "current_kind_id": spaces.Box(low=-1, high=num_kinds - 1, shape=(), dtype=np.int32),
            "current_col": spaces.Box(low=-1, high=board.width - 1, shape=(), dtype=np.int32),
            "current_row": spaces.Box(low=-1, high=board.height - 1, shape=(), dtype=np.int32),
            "current_resources": spaces.Box(low=0, high=np.inf, shape=(num_dims,), dtype=np.float32),
            "next_kind_id": spaces.Box(low=-1, high=num_kinds - 1, shape=(), dtype=np.int32),
            "next_resources": spaces.Box(low=0, high=np.inf, shape=(num_dims,), dtype=np.float32),
            "node_used": spaces.Box(low=0, high=np.inf, shape=(num_nodes, num_dims), dtype=np.float32),
            "node_total": spaces.Box(low=0, high=np.inf, shape=(num_nodes, num_dims), dtype=np.float32),
            "node_specialization": spaces.Box(
                low=0, high=len(self._config.nodes.specializations) - 1,
                shape=(num_nodes,), dtype=np.int16
            ),
            "node_pod_count": spaces.Box(low=0, high=np.iinfo(np.int32).max, shape=(num_nodes,), dtype=np.int32),
        })

    def reset(
        self,
        *,
        seed: Optional[int] = None,
        options: Optional[Dict[str, Any]] = None
    ) -> Tuple[Dict[str, np.ndarray], Dict[str, Any]]:
        """
        Reset the environment and start a new game.

        Args:
            seed: Random seed for reproducibility.
            options: Additional options (unused).

        Returns:
            (observation, info) tuple.
        """
        super().reset(seed=seed)

        self._game.reset(seed=seed)
        self._game.start()
        self._steps = 0

        obs = self._game.snapshot().to_obs_dict()
        info = self._game.get_info()
        info["delta_score"] = 0

        return obs, info

    def step(
        self,
        action: Union[int, np.integer, np.ndarray]
    ) -> Tuple[Dict[str, np.ndarray], float, bool, bool, Dict[str, Any]]:
        """
        Execute one step.

        Args:
            action: Discrete action in [0, 3].

        Returns:
            (observation, reward, terminated, truncated, info) tuple.
            Reward is always 0.0.
        """
        if isinstance(action, np.ndarray):
            action = action.item()
        action = int(action)
        if not self.action_space.contains(action):
            raise ValueError(f"Invalid action {action}; expected 0-3")
        if self._game.state is not GameState.RUNNING:
            raise RuntimeError("step() called on a finished game; call reset()")

        score_before = self._game.score
        placed = False
        lines = 0

        command = _ACTION_COMMANDS.get(action)
        if command is not None:
            result = self._game.handle(command)
            if result.placement is not None:
                placed = True
                lines += result.placement.lines_cleared

        if not placed and not self._game.is_over:
            result = self._game.tick()
            if result.placement is not None:
                placed = True
                lines += result.placement.lines_cleared

        self._steps += 1
        terminated = self._game.is_over
        truncated = (
            not terminated
            and self._max_steps is not None
            and self._steps >= self._max_steps
        )

        obs = self._game.snapshot().to_obs_dict()

        # Reward is always 0.0
        reward = 0.0

        info = self._game.get_info()
        info["delta_score"] = self._game.score - score_before
        info["placed"] = placed
        info["lines"] = lines
        info["steps"] = self._steps

        if self._debug:
            print(f"[DEBUG] Step: action={action}, delta_score={info['delta_score']}, "
                  f"placed={placed}, score={self._game.score}")
            if terminated:
                print(f"[DEBUG] TERMINATED: {info.get('terminated_reason', 'unknown')}")

        return obs, reward, terminated, truncated, info

    def close(self) -> None:
        """Nothing to release; no renderer is attached."""

    @property
    def game(self) -> CoreGame:
        """Access to underlying game (for debugging/tools)."""
        return self._game

    @property
    def config(self) -> GameConfig:
        """Game configuration."""
        return self._config
