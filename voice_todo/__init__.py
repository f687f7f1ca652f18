"""Voice-driven todo assistant backed by a plain-text task file."""
