"""
Domain layer of the grading engine.
"""
