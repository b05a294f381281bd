"""Test suggestions for git changes: service client, diff reading, and commands to apply, revert, run and hook them."""

__version__ = "0.1.0"
__all__ = ["__version__"]