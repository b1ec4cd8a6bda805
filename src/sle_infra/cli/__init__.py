"""
Command line interface for the SLE infrastructure toolkit.
"""
