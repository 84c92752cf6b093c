"""
Kube Tetris Package
===================

A falling-block game about scheduling Kubernetes-style pods onto cluster
nodes. The engine in ``kube_tetris.engine`` owns every rule of the game:

- Pod and upgrade catalog
- Node capacity ledger
- Placement, scoring and rotating constraints
- Termination conditions and high scores

Tunable parameters live in game_config.yaml.
"""
