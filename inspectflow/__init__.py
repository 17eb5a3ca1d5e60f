"""InspectFlow - calendar event ingestion, classification and inspector assignment."""

__version__ = "1.0.0"
