"""User registration with emailed verification codes and session login."""

__version__ = "0.1.0"
