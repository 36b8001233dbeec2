"""Catalog Query & Ordering Engine."""
