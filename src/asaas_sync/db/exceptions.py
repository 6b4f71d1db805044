"""Local store exceptions."""


class StoreError(Exception):
    """Raised when a local read or write fails.

    Wraps the underlying SQLAlchemy error; fatal to the record being
    reconciled, not to the run.
    """
