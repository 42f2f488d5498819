"""
MT5 bounded context: domain layer.

Linking a user's MetaTrader 5 broker account to AlgoEdge:
- Local account records and their connection status
- Remote (MetaAPI) account state as observed through the provider port
- The provisioning schedule that bounds every wait on the provider
"""
