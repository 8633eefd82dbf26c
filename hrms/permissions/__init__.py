"""Permission catalogue, role grants and per-user overrides."""
