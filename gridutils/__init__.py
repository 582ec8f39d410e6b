"""
Dicesoku - Utilities Package
Coordinate string helpers and board iteration.
"""
from .coords import coordinate_to_string, string_to_coordinate, in_bounds, iter_cells

__all__ = ['coordinate_to_string', 'string_to_coordinate', 'in_bounds', 'iter_cells']
