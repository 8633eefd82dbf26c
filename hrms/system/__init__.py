"""System and database introspection."""
