"""
user_service tests

Covers the core backend logic of the user service:

- Field validators (`validators.py`)
- RS256 token service and permission checks (`auth.py`)
- SQLAlchemy repository (`repository.py`, `models.py`, `db.py`)
- FastAPI endpoints (`main.py`, `routes/health.py`)
"""
