"""
Core infrastructure for Goopdex.

- config: environment settings (`Config`) and YAML game tunables (`ConfigManager`)
- database: async SQLAlchemy engine, sessions and transactions
- event: in-process EventBus for post-commit domain events
- logging: structured logging with per-operation context
- clock: injectable time source

Submodules are imported directly; this package re-exports nothing so that
importing one subsystem never drags in the others.
"""
