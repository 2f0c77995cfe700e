"""
XRAI feed engine: personalized feed ranking and continuation aggregation.
"""
__version__ = "0.1.0"
