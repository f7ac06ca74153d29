"""
Task subsystem.

Components:
- task_models.py: data structures (Task, TaskIdentity, RecurringPattern, ...)
- occurrence.py: pure "does this task occur on this day" calculator + calendar helpers
- task_catalog.py: loads tasks exported from the document store
"""
