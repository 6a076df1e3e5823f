"""
Media Tracker Core

Entity model, review side effects, summary aggregation and the composed
GraphQL API of a personal media-tracking service.
"""

__version__ = "1.0.0"
