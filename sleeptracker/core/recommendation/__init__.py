"""
Recommendation module for sleep insights.

This module contains the rule-based action recommendations built from
personalization metrics, and the friction backlog ranking.
"""

from sleeptracker.core.recommendation.friction_backlog import FrictionBacklogRanker
from sleeptracker.core.recommendation.recommendation_engine import SleepRecommendationEngine

__all__ = ['FrictionBacklogRanker', 'SleepRecommendationEngine']
