"""
task_arbor: recursive task planner/executor.

Components:
- tasks/: data model, JSON task store, candidate selection, scheduler
- planner/: LLM-backed classifier, executor, evaluator and decomposer
- artifacts/: the work directory holding generated artifacts (and the task file)
- llm/: OpenAI-compatible client and structured-output helper
"""
