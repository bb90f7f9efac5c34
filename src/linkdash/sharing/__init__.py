"""
Team sharing -- export a subset of the dashboard for someone else.

Two ways out: a short registry code (needs the store) or an offline
compressed code (needs nothing). Both decode to a TeamPayload.
"""

from .codec import decode, encode
from .redeem import redeem
from .registry import ShareRegistry, generate_code

__all__ = ["ShareRegistry", "decode", "encode", "generate_code", "redeem"]
