"""
Creator-Fee Flywheel Backend

A backend service that operates a fleet of custodial token-creator wallets:
- Claims accrued creator fees from the trading venue
- Confirms each claim against the wallet's on-chain SOL balance
- Reinvests the proceeds into target-token and own-token buys
- REST API for the cron trigger and the activity feed
"""

__version__ = "0.1.0"
__author__ = "Fee Flywheel Team"
