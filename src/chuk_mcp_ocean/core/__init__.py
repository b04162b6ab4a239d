"""Field reconstruction, contouring and caching engine."""
