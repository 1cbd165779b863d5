"""Digital hall pass: single-occupant pass tracking with a usage ledger."""

__version__ = "0.1.0"
