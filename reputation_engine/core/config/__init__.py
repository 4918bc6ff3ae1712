"""
Configuration subsystem for the Reputation & Progression Engine.

- **config.py**: static configuration from environment variables (.env support)

Scoring tables (weights, tiers, leveling) are not configuration in this
sense; they live in ``reputation_engine.modules.reputation.tables`` and can be
loaded from YAML.
"""

from reputation_engine.core.config.config import Config, Environment, LockBackend

__all__ = ["Config", "Environment", "LockBackend"]
