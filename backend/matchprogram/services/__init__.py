"""
Services Layer

Match program logic that:
- Accepts domain inputs (participants, court snapshots, store handles)
- Returns domain outputs (snapshots, reports, dataclasses)
- Does NOT depend on HTTP request/response objects
- Only writes to the database through MatchStore
"""
