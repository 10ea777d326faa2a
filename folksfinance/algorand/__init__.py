"""
Algorand domain model and application state decoding
"""
