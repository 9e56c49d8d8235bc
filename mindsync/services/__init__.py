# Services package init
"""
MindSync Backend — Services Layer
===================================

What:  Business logic between routes (HTTP) and the database.

Service Inventory:
    - MeditationService: session lifecycle, history, stats, streak
    - session_analytics: pure derivations (mood improvement, status,
                         effectiveness, streak walk)
    - UserService:       user records and the atomic aggregate increment
    - EmotionService:    face-image check-ins and their history
    - EmotionClassifier: pluggable classifier (mock and fallback)
    - NotificationHub:   per-user WebSocket fan-out
    - validators:        shared business-rule checks

Apart from NotificationHub, services never touch HTTP objects and are
unit-tested directly against a database session.
"""
