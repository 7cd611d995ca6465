"""Shelf: a folder-based file manager backend."""
