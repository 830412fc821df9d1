"""Bibliothek Desk - client package for the bibliothek REST backend

This package contains:
- Records and wire format (models.py)
- Loan rules (lifecycle.py)
- Form validation (validators.py)
- Client-side search and paging (listing.py)
- Backend access (services/)
- Workflows and statistics (library.py)
- Display rows and CLI output (views.py, ui_helpers.py)
"""
