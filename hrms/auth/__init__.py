"""Auth module — users, roles, JWT sessions and company assignment."""
