"""
Substack Intelligence - company extraction from newsletter content.
"""

__version__ = "0.1.0"
