"""Reference library synchronisation for the reference manager."""

__version__ = "0.4.0"
