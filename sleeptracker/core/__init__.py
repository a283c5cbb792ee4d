"""
Core modules for the Sleep Tracker.

This package contains the core functionality for:
- Time resolution and daily sample building
- Trend and personalization analysis
- Recommendation and friction backlog ranking
- Record storage and service orchestration
"""
