"""
Shared module package.

Contains cross-cutting concerns used across bounded contexts:
- Error handling and mapping
- Security middleware, rate limiting and bearer tokens
- Bounded polling of remote state
- Logging configuration
"""
