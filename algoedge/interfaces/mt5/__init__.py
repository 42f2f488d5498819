"""HTTP interface of the MT5 bounded context."""
