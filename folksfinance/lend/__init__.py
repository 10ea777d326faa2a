"""
Folks Finance lending protocol formulae, oracle pricing and loan risk valuation
"""
