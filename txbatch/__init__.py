"""Batch EVM transaction submission over JSON-RPC."""

__version__ = "0.1.0"
