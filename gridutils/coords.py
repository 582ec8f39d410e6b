"""
Coordinate helpers for square boards, shared by the grid model and JSON I/O.
"""
from typing import Iterator, Tuple


def in_bounds(row: int, col: int, size: int) -> bool:
    """True if (row, col) lies on a size x size board."""
    return 0 <= row < size and 0 <= col < size


def coordinate_to_string(row: int, col: int) -> str:
    """Convert coordinate tuple to string format used in JSON."""
    return f"{row},{col}"


def string_to_coordinate(coord_str: str) -> Tuple[int, int]:
    """Convert string coordinate back to tuple."""
    row, col = coord_str.split(',')
    return int(row), int(col)


def iter_cells(size: int) -> Iterator[Tuple[int, int]]:
    """Row-major iteration over every coordinate of the board."""
    for row in range(size):
        for col in range(size):
            yield row, col
