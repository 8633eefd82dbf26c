"""Employee records."""
