"""
Utility helpers shared across Layover.
"""
