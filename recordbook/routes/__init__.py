# Routes package init
"""
Recordbook Backend: API Routes Package
=======================================

Route Inventory:
    - health.py:    GET    /api/health
    - records.py:   GET    /api/init
                    GET    /api/records
                    POST   /api/records
                    DELETE /api/records/{id}
                    GET    /api/stats
    - login.py:     POST   /api/login
    - fallback.py:  any    unmatched /api path → 404 Not Found

Routes stay thin: decode the request, call the service, return its model.
"""
