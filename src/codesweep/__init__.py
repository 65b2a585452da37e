"""
codesweep - bulk cleanup of unused imports, variables and functions in
JavaScript/TypeScript projects, driven by language server quick fixes.
"""

__version__ = "0.1.0"
