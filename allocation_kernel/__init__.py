"""
Allocation Kernel - Daily Allocation Entry Lifecycle Engine

Rules for outsourced case-processing work logs:
- Per-resource, per-day serial numbering
- Billing frozen at the rate in force when the entry was logged
- Edits with a mandatory, append-only audit trail
- Two-phase (request/review) soft and hard deletion
- Month-end period locking in a single business time zone
"""

__version__ = "0.1.0"
