"""
Sleep Tracker: personal sleep record store with trend analytics.

This package contains:
- DST-aware sleep duration resolution
- Rolling-window personalization metrics and recommendations
- Friction telemetry backlog ranking
- A CSV-backed record store and a FastAPI service
"""

__version__ = "0.4.0"
