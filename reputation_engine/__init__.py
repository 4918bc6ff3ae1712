"""
Reputation & Progression Engine.

Entry point: ``reputation_engine.modules.engine.ProgressionService``.
"""
