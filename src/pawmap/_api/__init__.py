"""Adapters mapping engine operations onto the document store and search provider."""
