"""
Routing and transformation core.
"""
