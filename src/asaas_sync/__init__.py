"""Rate-governed synchronization of Asaas records into a local database."""

__version__ = "0.1.0"
