"""Game-world logic for a tile-based online role-playing game: sectors, visibility, NPC movement, combat and timers."""

__version__ = "0.1.0"