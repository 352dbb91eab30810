"""
Reconciliation engine: outbound dispatch (engine), inbound webhooks (inbound), availability
arithmetic (availability) and per-integration serialization (locks). Import submodules directly.
"""
