"""
Application layer for the MT5 bounded context.

Use cases coordinate domain entities and ports to fulfill
account linking operations. No framework or infrastructure imports allowed.
"""
