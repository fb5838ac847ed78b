"""personalfit: gamification and adherence-analytics engine"""

__version__ = "1.0.0"
