"""Third-party platform integrations."""
