"""
HOLC Equity Maps

Spatial join and aggregation pipeline comparing environmental indicators and
biodiversity observations across historical redlining (HOLC) grades.
"""

__version__ = "0.1.0"
