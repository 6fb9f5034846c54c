"""Marketplace and admin accounts as seen by the trust engine."""
