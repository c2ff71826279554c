# tests/property/__init__.py
"""Property-based tests for autobuild.

Property-based testing validates invariants that must hold for ALL inputs,
not just the specific examples we think of. For a crash-resumable pipeline
that means every kill schedule and every registration order.

Test categories:
- core/: Cursor store state machine
- engine/: Step assembly determinism, kill-and-resume outcomes
"""
