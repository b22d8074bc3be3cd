"""HTTP API for map generation and interactive editing."""
