"""
Timer subsystem.

Components:
- timer_models.py: TimerState (persisted), TimerSession (in-memory), display formatting, keys
- timer_store.py: SQLite-backed per-task timer state
- timer_engine.py: start/stop/tick state machine with remote-wins reconciliation
- timer_api.py: open/close helpers for the single task-detail timer of the app
"""
