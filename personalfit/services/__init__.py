"""
Service Layer Package

Async facades that wire the pure gamification and analytics components to
the persistence layer:
- GamificationService: completions, daily challenges, streak freezes, profile
- AdherenceService: adherence dashboard and medication detail
- CorrelationService: medication/metric correlation runs and insights
"""

from personalfit.services.container import ServiceContainer, get_container, init_container

__all__ = [
    "ServiceContainer",
    "get_container",
    "init_container",
]
