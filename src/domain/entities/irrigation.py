"""Irrigation status enumeration."""

from enum import Enum


class Irrigation(str, Enum):
    """Enumeration for the irrigation practice encoded in a NASS data item."""

    IRRIGATED = "IRRIGATED"
    NON_IRRIGATED = "NON-IRRIGATED"

    @classmethod
    def parse(cls, text: str) -> "Irrigation":
        """
        Parse a normalised data item fragment.

        Raises:
            ValueError: if the fragment is not a known irrigation status
        """
        try:
            return cls(text.strip().upper())
        except ValueError:
            raise ValueError(f"Unknown irrigation status: {text!r}") from None

    def to_label(self) -> str:
        """Convert to a human readable label for plots and reports."""
        mapping = {
            Irrigation.IRRIGATED: "Irrigated",
            Irrigation.NON_IRRIGATED: "Non-irrigated",
        }
        return mapping[self]
