"""
Infrastructure layer: snapshot stores and logging setup.
"""
