"""
Core (no I/O of its own).

Components:
- models.py: data structures (Task, Session, View)
- results.py: remote result type and operation outcomes
- ports.py: Protocols the remote backend implements
- controller.py: task view-state controller (optimistic updates + reconciliation)
- state.py: AppState wiring used by the CLI
"""
