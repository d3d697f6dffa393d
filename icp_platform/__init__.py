"""
ICP Platform backend - solutions and partners catalog with approval workflow,
semantic search and on-demand translation.
"""

__version__ = "1.0.0"
