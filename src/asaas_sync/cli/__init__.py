"""Command-line interface for Asaas Sync."""
