"""Wearable sync for fitsync.

Modules:
    heart_rate — Daily intraday heart-rate sync (token → fetch → write)
"""
