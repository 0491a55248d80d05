"""
Realm server package.

A persistent-world role-playing game server: players train skills, gather,
craft, fight, keep houses and hold offices while the world ticks through
weeks and seasons.
"""

__version__ = "0.1.0"
