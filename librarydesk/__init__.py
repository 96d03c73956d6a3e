"""Library Desk - Core Application Package

This package contains the core application modules including:
- API endpoints (api.py)
- Catalog management for books and students (catalog.py)
- Issue/return ledger and fines (ledger.py)
- Admin authentication and sessions (auth.py)
- CLI interface (main.py)
- Data models (models.py)
- Database layer (database.py)
"""

__version__ = "1.0.0"
