"""
Command line interface for Layover.
"""
