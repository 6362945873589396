"""
Services running crawls and storing their results.
"""
