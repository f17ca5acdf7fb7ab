"""
PointAllocator reporting.

Flattens simulation history and scenario scores into pandas DataFrames
for display or export.
"""

from point_allocator.reporting.tables import history_frame, scenario_summary_frame

__all__ = ["history_frame", "scenario_summary_frame"]
