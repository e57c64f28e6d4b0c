"""Authoritative predator/prey arena game server."""
