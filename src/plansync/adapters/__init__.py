"""Document store and lock adapters."""
