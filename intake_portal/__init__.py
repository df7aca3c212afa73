"""Intake Portal - website content intake, review and export for multi-tenant clients."""

__version__ = "1.0.0"
__author__ = "Intake Portal Team"
__description__ = "Client content aggregation, build-request review and section export"

# Package metadata
__all__ = [
    "__version__",
    "__author__",
    "__description__"
]
