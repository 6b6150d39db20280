"""HTTP API for CartKeeper."""
