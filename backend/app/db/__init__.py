"""
Database package.
"""
