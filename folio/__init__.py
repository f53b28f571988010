"""Serve EPUB chapters and embedded assets straight from the archive."""
