"""Shopify OAuth, signature, and webhook helpers."""
