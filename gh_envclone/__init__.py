"""Clone GitHub Actions environment variables and secrets between environments."""

__version__ = "0.1.0"
