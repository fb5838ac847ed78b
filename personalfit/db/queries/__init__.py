"""
Database queries, grouped by domain

- gamification: user state documents, credited events, daily challenge sets
- adherence: medications, dose logs, body metrics
- correlations: derived medication/metric correlations
"""
from personalfit.db.queries import adherence, correlations, gamification

__all__ = ["adherence", "correlations", "gamification"]
