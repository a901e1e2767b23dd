"""Cluster name resolution and the persisted cluster mapping."""
