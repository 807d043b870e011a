"""Monthly spreadsheet import for the quarry dashboard."""

__version__ = "0.1.0"
