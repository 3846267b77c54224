"""JSON-RPC transports over TCP and stdio, publish-subscribe sessions and server utilities."""

__version__ = "0.1.0"