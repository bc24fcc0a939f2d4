"""User interface layer (CLI)."""
