"""
Input preprocessing for PointAllocator.

``inputs`` holds the lenient numeric parsing used by every model and the
simulator; ``cleaning`` cleans tabular spend input loaded with pandas.
"""
