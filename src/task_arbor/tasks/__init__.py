"""
Task subsystem.

Components:
- task_models.py: data structures (Task, WorkEntry, Priority, SubtaskSpec)
- task_store.py: JSON-file storage with whole-collection transactions
- task_selector.py: candidate selection and priority ordering
- task_scheduler.py: stack-based scheduler driving classify / execute / evaluate
- task_api.py: small high-level helpers used by the CLI
"""
