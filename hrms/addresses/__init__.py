"""Bangladesh address directory."""
