"""
Trading venue operations.
"""

from .pumpportal_client import PumpPortalClient
from .responses import VenueResponse, classify_claim_response, parse_trade_response
from .executors import FeeClaimClient, BuyExecutor, TransferExecutor, round_down_to_lot

__all__ = [
    "PumpPortalClient",
    "VenueResponse",
    "classify_claim_response",
    "parse_trade_response",
    "FeeClaimClient",
    "BuyExecutor",
    "TransferExecutor",
    "round_down_to_lot",
]
