"""Tournament results engine: events, catch ledger, rankings and standings."""

__version__ = "0.1.0"
