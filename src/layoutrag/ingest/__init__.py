"""Reconstruction, atomic detection and chunking of layout-extracted documents."""
