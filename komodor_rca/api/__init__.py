"""Komodor REST API client."""
