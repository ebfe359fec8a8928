"""
Core comparison and merge engine.
"""
