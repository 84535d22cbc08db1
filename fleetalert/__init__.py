"""
fleetalert — Alert generation and scheduling engine.

Architecture:
    fleetalert/
    ├── scheduling/      # Schedule parsing (daily / interval) → APScheduler triggers
    ├── checks/          # One Check per alert type (rentals, fleet, payments, sales)
    ├── services/        # Orchestrator, alert store (dedup/upsert), retention, domain adapter
    └── db/              # SQLAlchemy models, engine, read-only domain queries

Data Flow:
    Trigger → AlertScheduler → Check → DomainSource (read-only)
    → AlertCandidate → AlertStore.upsert (atomic, natural key)
    → stale alerts resolved
    Cleanup trigger → RetentionJob → AlertStore deletes expired / old resolved

Module Boundaries:
    - Domain entities are READ ONLY; the engine only writes the alerts table
    - Delivery (email, push, websocket) subscribes to alerts, never lives here
    - Every threshold and schedule is configuration

Version: 1.0.0
"""

__version__ = "1.0.0"
