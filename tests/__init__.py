"""
Reputation Engine Test Suite
============================

Test Organization
-----------------
- tests/unit/          : Calculators, domain models, core services and the
                         orchestrator against in-memory fakes
- tests/integration/   : DatabaseService and SqlUserStore on aiosqlite

Running
-------
- ``pytest -m unit`` for the fast suite
- ``pytest -m integration`` for the SQL-backed suite
- Tests follow the Arrange / Act / Assert layout
"""
