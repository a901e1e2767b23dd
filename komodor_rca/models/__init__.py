"""Data models shared across komodor-rca components."""
