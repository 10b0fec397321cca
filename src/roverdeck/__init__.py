"""RoverDeck - multi-rover session manager."""

__version__ = "0.1.0"
