"""Measured variable enumeration."""

from enum import Enum


class Variable(str, Enum):
    """Measured variables kept from the NASS data item field."""

    ACRES_HARVESTED = "ACRES HARVESTED"
    PRODUCTION = "PRODUCTION"

    @property
    def column(self) -> str:
        """Column name used after pivoting."""
        return self.name.lower()
