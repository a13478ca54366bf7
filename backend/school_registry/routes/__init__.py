"""
School Registry Backend: API Routes Package
=============================================

Route Inventory:
    - schools.py:  POST /api/schools             (create, multipart)
                   GET  /api/schools             (list, newest first)
                   GET  /api/schools/{id}        (single record)
    - images.py:   GET  /schoolImages/{filename} (stored image bytes)
    - health.py:   GET  /health                  (database reachability)

Routes stay thin: they read the request, call SchoolService and wrap the
result. Everything else lives in services/.
"""
