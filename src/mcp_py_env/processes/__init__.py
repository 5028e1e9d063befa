"""Subprocess spawning and output streaming."""
