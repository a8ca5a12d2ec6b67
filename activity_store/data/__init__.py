"""Couche données : domaine, manifest, synchronisation et repositories."""
