"""
HTTP boundary for the document ledger.

Run with:  uvicorn api.app:create_app --factory
      or:  python main.py serve
"""
