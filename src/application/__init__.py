"""Application layer for the moderation service.

Coordinates domain objects and infrastructure collaborators into the
moderation workflow.
"""
