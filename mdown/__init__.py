"""
mdown - a parallel-segment file downloader that keeps every connection busy by
splitting the largest remaining segment whenever one finishes early.
"""

__version__ = "0.3.0"
