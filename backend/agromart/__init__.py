"""agromart marketplace backend."""
