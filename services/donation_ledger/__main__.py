"""
Entry point for running the donation ledger service as a module.

Usage:
    python -m services.donation_ledger --output data/donate/donations.json
"""

from .main import cli_main

if __name__ == "__main__":
    exit(cli_main())
