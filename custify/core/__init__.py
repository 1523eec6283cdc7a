"""Core configuration, infrastructure, and cross-cutting helpers."""
