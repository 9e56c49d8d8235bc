# Routes package init
"""
MindSync Backend — API Routes Package
=======================================

Route Inventory:
    - users.py:          POST /api/users, GET /api/users/me
    - meditation.py:     POST /api/meditation/sessions
                         POST /api/meditation/sessions/{id}/complete
                         GET  /api/meditation/sessions[/{id}]
                         GET  /api/meditation/stats, /api/meditation/streak
    - emotions.py:       POST /api/emotions/analyze, GET /api/emotions/history
    - notifications.py:  WS   /ws/notifications
    - health.py:         GET  /health
    - deps.py:           X-User-ID → User dependency

Routes stay thin: extract parameters, resolve the caller, call a service,
publish a notification after a successful write.
"""
