"""Serving: HTTP surface for paper question answering."""
