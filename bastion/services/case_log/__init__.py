"""
Bastion - Case Log Package
==========================

Moderation case ledger.
"""

from .ledger import CaseLedger

__all__ = ["CaseLedger"]
