"""HTTP API layer: dependencies and route definitions."""
