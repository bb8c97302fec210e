"""
Dashboard Service - HTTP API for the Score Dashboard

Responsibilities:
- Tournament registry (CRUD, round appends)
- User directory (CRUD, batch player lookup)
- Merge score statistics into tournament responses
- Health and service info endpoints
"""
