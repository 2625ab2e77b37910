"""
Concrete scenario scripts built on the orchestrator primitives.
"""
