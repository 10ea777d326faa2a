"""
Folks Finance lending v1 formulae
"""
