"""Arete - XP, leveling and achievement engine for a fitness tracker"""

__version__ = "0.1.0"
