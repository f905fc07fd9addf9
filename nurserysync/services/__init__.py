"""Service layer for the nursery catalog core."""
