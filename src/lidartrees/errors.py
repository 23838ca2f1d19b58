# src/lidartrees/errors.py

"""
This module defines the exception hierarchy shared by all lidartrees stages.
"""

__all__ = [
    "LidarTreesError",
    "InvalidInputError"
]

class LidarTreesError(Exception):
    """Base class for all errors raised by lidartrees."""

class InvalidInputError(LidarTreesError, ValueError):
    """
    Raised when a stage receives input it cannot process.

    Examples include an empty point set entering rasterization, an empty
    candidate set entering the percentile filter, a non-positive cell size or
    neighborhood radius, or a percentile outside the open interval (0, 1).
    """
