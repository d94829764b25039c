"""
Multi-Sport Scoring Engine

Turns raw per-participant recorded values (strokes, times, points, set
scores) into ranked, comparable results and keeps derived results
consistent across a hierarchical tree of scoring stages.
"""

__version__ = "0.1.0"
__author__ = "Multisport Scoring Team"
__license__ = "MIT"
