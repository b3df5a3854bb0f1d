"""
xml2fcv — camera post-process XML to XFBIN fcv converter.
"""

__version__ = "0.1.0"
