"""
PointAllocator scenario book.

In-memory, ordered collection of user and optimizer scenarios. Nothing is
persisted beyond the process lifetime.
"""

from point_allocator.scenarios.book import ScenarioBook

__all__ = ["ScenarioBook"]
