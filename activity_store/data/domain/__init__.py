"""Domaine : enums de référence et modèles (payloads API, rapports)."""
