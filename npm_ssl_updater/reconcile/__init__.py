"""Reconciliation engine — desired state, change detection, diff and approval.

This package provides:
- Policy evaluation: the desired flag projection for one host
- Change sets: the ordered list of flags that differ
- Diff rendering: a per-field before/after report for operator review
- Batch approval: per-item confirmation with an irreversible "apply all"
- The driver that threads every host through the steps above
"""
