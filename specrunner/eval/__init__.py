"""
Consistency checks for run results.

Provides helpers that inspect RunResult objects after a run and report
structural violations as human-readable messages.
"""
