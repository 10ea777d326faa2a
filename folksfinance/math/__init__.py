"""
Scaled integer (fixed-point) arithmetic
"""
