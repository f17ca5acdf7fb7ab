"""
PointAllocator random generators.

Boost events are not predictable; for what-if exploration they are drawn
at random per ecosystem. Output is reproducible for a fixed seed.
"""

from point_allocator.generators.boost_generator import BoostEventGenerator

__all__ = ["BoostEventGenerator"]
