"""Token-budgeted project export for language models."""

__version__ = "0.1.0"
