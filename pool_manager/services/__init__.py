"""
Services Layer

Business logic that:
- Accepts domain inputs (IDs, sessions, request models)
- Returns domain outputs (response models, booleans)
- Raises pool_manager.exceptions errors instead of HTTP errors
- Does NOT depend on HTTP request/response objects
"""
