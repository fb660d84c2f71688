"""
Procurement Kernel

The lifecycle and reconciliation core behind the procurement front end:
- Explicit status state machines for PRs, RFQs, contracts, IPCs and invoices
- Append-only status history on every record
- Per-record optimistic concurrency against an injected storage port
- Typed, machine-readable failures for every rejected operation
"""

__version__ = "0.1.0"
