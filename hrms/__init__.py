"""HR Hub API: multi-tenant HR management backend."""
