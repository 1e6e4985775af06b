"""Gem download counting from CDN access logs."""
