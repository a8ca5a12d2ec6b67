"""Destiny Activity Store.

Synchronisation incrémentale de l'historique Crucible (PvP) d'un joueur
Destiny 2 vers une base DuckDB locale, et vues enrichies pour les rapports.

Architecture:
- data/sync : client API, moteur de synchronisation, accès au store
- data/manifest : cache de définitions (manifest en lecture seule)
- data/repositories : récupération et projection des activités
- session.py : session possédant la connexion et le cache
"""

__version__ = "0.1.0"
