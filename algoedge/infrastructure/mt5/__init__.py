"""
Infrastructure adapters for the MT5 bounded context.

Implements the domain ports defined in algoedge.domain.mt5.ports.
"""
