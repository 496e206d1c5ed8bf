"""
Core functionality for configured.

This package contains the exception hierarchy, the config registry with its
formats, and the localization layer built on top of it.
"""
