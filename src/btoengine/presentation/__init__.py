"""
Presentation layer (command line).
"""
