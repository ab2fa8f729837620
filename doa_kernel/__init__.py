"""
DOA Kernel - approval chain resolution core.

Determines which organizational roles must Initiate, Review, Endorse,
Approve or be Notified before a contract can proceed:
- Threshold resolution over contract value, capex, type and country risk
- Special-country and profitability escalation
- Read-through threshold/country cache with invalidate-on-write
- Canonical, deduplicated approver chains
"""

__version__ = "0.1.0"
