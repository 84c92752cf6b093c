"""
Kube Tetris Engine - The core game simulation.

This module provides the grid, node ledger, placement and scoring systems,
the game state machine and a Gymnasium environment wrapper.

Main exports:
- CoreGame: Game state machine driven by ticks and commands
- KubeTetrisEnv: Gymnasium environment for agents
- GameConfig: Configuration loaded from game_config.yaml
- PieceCatalog: Pod and upgrade kinds
- HighScoreStore: Persistent high-score table
"""

from kube_tetris.engine.config_loader import GameConfig, get_config, load_config
from kube_tetris.engine.resources import Dimension, Resources
from kube_tetris.engine.catalog import PieceCatalog, PodKind, PodRole, UpgradeKind
from kube_tetris.engine.pieces import Pod, Upgrade
from kube_tetris.engine.rng import Spawner
from kube_tetris.engine.board import Board
from kube_tetris.engine.ledger import NodeLedger
from kube_tetris.engine.placement import PlacementEffect, PlacementEngine, PlacementOutcome
from kube_tetris.engine.high_scores import HighScoreEntry, HighScoreStore
from kube_tetris.engine.game import Command, CoreGame, GameState, StepResult
from kube_tetris.engine.env_gym import KubeTetrisEnv

__all__ = [
    "GameConfig",
    "get_config",
    "load_config",
    "Dimension",
    "Resources",
    "PieceCatalog",
    "PodKind",
    "PodRole",
    "UpgradeKind",
    "Pod",
    "Upgrade",
    "Spawner",
    "Board",
    "NodeLedger",
    "PlacementEffect",
    "PlacementEngine",
    "PlacementOutcome",
    "HighScoreEntry",
    "HighScoreStore",
    "Command",
    "CoreGame",
    "GameState",
    "StepResult",
    "KubeTetrisEnv",
]
