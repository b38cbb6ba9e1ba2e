"""
Locate Tracking Module
======================

Bounded Context for utility locate requests and their completion SLAs.

Responsibilities:
- Normalize upstream work orders into flat locate records
- Calculate completion deadlines for STANDARD and EMERGENCY calls
- Classify locates into Needs Call / In Progress / Completed buckets
- Render live countdowns with urgency tiers on every clock tick
- Coordinate single and bulk call, delete and tagging actions
- Provide dashboard API for locate visibility
"""

__version__ = "1.0.0"
