"""Service layer — the transaction-scoped command executor.

Services return ServiceResult; the CLI and the interactive console
consume it through the output layer.
"""
