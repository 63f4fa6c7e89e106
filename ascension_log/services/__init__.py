"""Reference data lookups."""
