"""Data models for claims and EDI transactions."""

from .claim import ClaimData
from .transaction import EDITransaction

__all__ = ['ClaimData', 'EDITransaction']
