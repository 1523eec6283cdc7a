"""Custify: Shopify loyalty fields app backend."""
