"""Survey graph engine: branching surveys with resumable response sessions."""

__version__ = "0.1.0"
