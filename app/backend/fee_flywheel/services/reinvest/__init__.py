"""
Creator fee collection and reinvestment.

Modular structure:
- core: pass types, per-wallet pipeline and orchestrator
- blockchain: balance reads and balance-delta confirmation
- venue: trading venue client and executors
- database: wallet registry, token directory and activity store
"""

from .core.orchestrator import ReinvestOrchestrator, build_orchestrator
from .core.pipeline import WalletPipeline

__all__ = [
    "ReinvestOrchestrator",
    "WalletPipeline",
    "build_orchestrator",
]
