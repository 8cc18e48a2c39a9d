"""
Music Grading - user-defined, hierarchical grading methods for music items.

This package lets users compose grading methods out of numeric grades and
nested blocks, apply them to tracks and albums, and obtain overall and
normalized ratings from the result.
"""

__version__ = "1.0.0"
__author__ = "Music Grading Team"
