"""CLI module for enostics."""
