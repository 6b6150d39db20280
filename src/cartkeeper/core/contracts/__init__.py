"""Pydantic contracts for CartKeeper inputs."""
