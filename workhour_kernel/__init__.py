"""
Work-Hour Kernel - approval authorization and workflow

Tracks the approval of daily work-hour records:
- Time-bounded approver/subordinate relationships
- Position-based approval authority
- Per-(person, date) approval state machine with compare-and-swap writes
- Append-only approval history and an event outbox
"""

__version__ = "0.1.0"
