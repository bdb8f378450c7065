"""
Recall - SM-2 spaced-repetition scheduler with study analytics.

Packages:
- core: domain models, errors, repository interfaces
- study: SM-2 scheduling, the review transaction, activity heatmap
- analytics: insight detection, learning profile, recommendations
- db: SQLAlchemy persistence
- cli: typer command-line interface
"""

__version__ = "1.0.0"
