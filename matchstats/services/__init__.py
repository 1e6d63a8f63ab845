"""
Match statistics services.

Import from the submodules directly, e.g.
``from matchstats.services.stats_engine import StatsEngine``.
"""
