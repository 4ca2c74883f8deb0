"""
Story Squad weekly tournament engine.

Turns approved, point-scored story submissions into weekly faceoff brackets
and folds the children's votes back into team and squad standings.
"""

__version__ = "1.0.0"
