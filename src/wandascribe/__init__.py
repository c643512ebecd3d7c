"""WandaScribe: an editing assistant backed by a remote text service."""

__version__ = "0.1.0"

__all__ = ["__version__"]
