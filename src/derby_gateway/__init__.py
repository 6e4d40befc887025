"""HTTP and WebSocket gateway for named SQL queries."""

from derby_gateway.app import create_app

__all__ = ["create_app"]
