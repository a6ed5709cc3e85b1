"""
Adaptive assessment packages.
"""
