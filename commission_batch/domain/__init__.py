"""Pure domain types for settlement runs."""
