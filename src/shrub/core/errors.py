"""Base exception shared by the Shrub library layers."""


class ShrubError(Exception):
    """Base class for errors raised by the Shrub library."""
