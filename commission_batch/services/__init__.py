"""Settlement batch services."""
