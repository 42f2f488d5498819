"""
Interfaces layer package.

Contains HTTP routers, request/response schemas and dependency wiring.
Routers delegate to application use cases. No business logic here.
"""
