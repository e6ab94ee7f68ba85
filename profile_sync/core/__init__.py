"""
Core profile flattening logic, models and policy.
"""
