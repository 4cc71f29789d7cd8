"""FootballBook authentication and session management."""

__version__ = "1.0.0"
