"""
Services shared by the core engine: file I/O, hashing and settings.
"""
