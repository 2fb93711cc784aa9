"""
Oracles - signed price helpers for Coinbase and RedStone
"""
