"""
Test package for btoengine.
"""
