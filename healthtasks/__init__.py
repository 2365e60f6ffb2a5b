"""Daily health-task tracking.

This package contains the task-completion workflow and the domain models,
kept apart from platform integrations (see ``adapters``) so the workflow can
be tested with plain in-memory doubles.
"""
