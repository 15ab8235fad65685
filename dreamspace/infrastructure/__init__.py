"""
Infrastructure layer - external service integrations.

- documents: the partitioned document store (MongoDB via motor, or an
  in-memory stand-in) and the repositories built on it.

These wrappers translate between stored documents and our domain models.
"""
