"""Typer command line for querying and serving the sensor broadcast service."""
