"""Load, merge, validate and migrate mock-generator YAML configuration."""

__version__ = "0.1.0"
__all__ = ["cli", "discovery", "loader", "migrate", "model", "yamlio"]