"""cmdgate: command dispatch and permission gating for chat bots."""

__version__ = "1.0.0"
