"""
ddmerge - interactive directory diff and merge.

Compares two directory trees and lets the operator reconcile them
entry by entry and hunk by hunk, applying changes in place to both sides.
"""

APP_NAME = "ddmerge"
APP_VERSION = "0.3.0"

__version__ = APP_VERSION

__all__ = ['APP_NAME', 'APP_VERSION', '__version__']
