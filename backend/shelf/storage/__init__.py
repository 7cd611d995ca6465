"""File storage module for Shelf.

This module maps untrusted folder and file names from HTTP requests onto a
directory tree under a single storage root.

- Folder and file names are reduced to [A-Za-z0-9_-] plus a safe extension
- Every resolved path must stay inside the storage root
- Colliding uploads get -1, -2, ... suffixes; writes use exclusive-create
- Any file type under 20MB (configurable)
"""
