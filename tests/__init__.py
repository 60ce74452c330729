"""
Formula Workbench Test Suite

Tests are organized by concern:
- test_scaling_*.py: Scaling pipeline stages, scenarios and invariants
- test_scaling_workflow.py: Normalize/Yield state machine
- test_formula_store.py: Canonical formula holder and undo history
- test_scaling_routes.py: JSON API
- test_config.py: Environment-driven configuration
"""
