"""Email source adapters."""
