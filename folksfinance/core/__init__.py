"""
Logging and configuration
"""
