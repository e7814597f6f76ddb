"""Rocketgraph installer (Python-first, fail-fast).

Core design goals:
- Detect a working container runtime before touching anything
- Never overwrite an operator's existing .env
- Refuse to start containers into busy ports
- Bounded waits on every external command
- Centralized logging
"""

__all__ = []
