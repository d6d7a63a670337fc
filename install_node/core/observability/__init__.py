"""
Observability — logging setup and per-task log buffering.
"""
