"""CFR and CFR+ with subgame pruning and check-free subgames on stored public game trees."""

__version__ = "0.1.0"