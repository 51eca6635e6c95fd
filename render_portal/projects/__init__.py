"""Filesystem-backed project store: one directory per project under the projects root."""
