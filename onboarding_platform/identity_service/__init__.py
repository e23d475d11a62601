"""
identity_service package

Credential and identity lifecycle for the onboarding platform:

- FastAPI application (`main.py`)
- SQLAlchemy models and credential store (`models.py`, `db.py`, `store.py`)
- Password hashing and session tokens (`auth.py`)
- Password reset tokens (`reset_tokens.py`)
- Lifecycle orchestration (`service.py`)
"""
