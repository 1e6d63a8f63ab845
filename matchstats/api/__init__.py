"""HTTP surface of the stats engine."""
