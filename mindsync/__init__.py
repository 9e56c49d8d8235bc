"""
MindSync Backend — Package Root
=================================

What: Meditation session ledger, practice analytics, emotion check-ins
      and live notifications behind a FastAPI app.
Who:  Imported by uvicorn (`mindsync.main:app`), Alembic and pytest.

Layout:
    routes/      FastAPI routers, identity dependency, WebSocket endpoint
    services/    MeditationService, UserService, EmotionService,
                 NotificationHub and the pure session_analytics helpers
    schemas/     Pydantic request/response models
    models/      SQLAlchemy tables and the shared enumerations
    middleware/  request id, access log, rate limit

    Only NotificationHub touches FastAPI (it holds WebSockets); routes
    translate HTTP to service calls and publish notifications afterwards.
"""

__version__ = "1.0.0"
