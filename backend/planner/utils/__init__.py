"""Small shared helpers (timestamp parsing, time-zone resolution)."""
