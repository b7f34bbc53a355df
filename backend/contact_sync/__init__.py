"""Contact extraction and HubSpot sync pipeline for meeting transcripts."""

__version__ = "0.1.0"
