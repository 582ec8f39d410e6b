"""
Dicesoku - Rendering Package
Text formatting of boards for the command-line front end.
"""
from .board_text import BoardTextRenderer

__all__ = ['BoardTextRenderer']
