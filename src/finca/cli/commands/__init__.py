"""Click command groups, one module per area."""
