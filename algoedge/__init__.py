"""
AlgoEdge MT5 account connectivity service.

Application package root. This is a modular monolith using
hexagonal architecture (ports & adapters) with domain-driven design.

Bounded contexts:
    - mt5: Linking a user's MetaTrader 5 broker account through the
      MetaAPI provisioning service (connect, refresh, disconnect).

Layers:
    - domain: Pure business logic, entities, ports (ABCs), errors.
    - application: Use cases, DTOs, orchestration.
    - infrastructure: Adapters (DB, MetaAPI) implementing domain ports.
    - interfaces: FastAPI routers, Pydantic schemas, dependency wiring.
    - shared: Cross-cutting concerns (errors, security, logging, polling).
"""
