"""Match statistics engine: touch tracking, goal attribution, career stats and backup-guarded storage."""

__version__ = "1.0.0"
