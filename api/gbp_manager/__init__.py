"""GBP Manager: Google Business Profile sync and analytics service."""

__version__ = "1.0.0"
