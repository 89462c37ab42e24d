"""Event log decoding against known event signatures."""

from mint_reconciler.decoding.decoder import decode, decode_any

__all__ = ["decode", "decode_any"]
