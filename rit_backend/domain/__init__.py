"""
Domain entities shared by the assessment core.
"""
