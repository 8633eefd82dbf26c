"""Table import / export."""
