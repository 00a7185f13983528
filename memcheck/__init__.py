"""
memcheck: heap lifecycle checker for C translation units, built on libclang.
"""

__version__ = "0.3.0"
