"""
Goopdex Test Suite
==================

Test Organization
-----------------
- unit/: formulas, validators, exceptions, core infrastructure, fusion
  table, writer locks (no database)
- integration/: the wired engine against in-memory SQLite

Running
-------
    pytest                     # everything
    pytest -m unit             # fast tests only
    pytest tests/integration   # engine behaviour
"""
