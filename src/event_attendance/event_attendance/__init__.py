"""Event Attendance package.

Feature modules (events, sessions, summaries, scans, reports) share a small
storage interface (unit of work over repositories) and a thin Flask layer.
"""
