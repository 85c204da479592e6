"""Plugin-based asynchronous application framework with components and layered TOML configuration."""

__version__ = "0.1.0"