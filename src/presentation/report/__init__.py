"""Report figures and document rendering."""

from .publisher import publish_report

__all__ = ["publish_report"]
