"""
Donation Ledger Service

Aggregates pledges and sponsorships from GitHub Sponsors, Patreon and
Buy Me a Coffee into a single reconciled donation ledger:
- HTTPX pagination with a fixed per-source throttle
- Pydantic settings for tokens and the privacy block-list
- Structured JSON logging with structlog
- CLI interface that writes the ledger as JSON
"""

__version__ = "0.1.0"
