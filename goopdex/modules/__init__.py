"""
Goopdex game modules.

Leaf services (catalog, collection, player, achievement, daily) each own one
slice of persistent state; `progression` orchestrates them into atomic
operations.
"""
