"""
Commission Kernel

Persistence and audit core for the roofing commission workflow:
- Decimal-exact money columns
- Compare-and-swap transitions on versioned rows
- Hash-chained, append-only status log per commission request
- Transactional notification outbox
"""

__version__ = "0.1.0"
