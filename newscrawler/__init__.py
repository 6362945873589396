"""
News website crawler: discovers, filters, extracts and stores articles.
"""
__version__ = "0.1.0"
