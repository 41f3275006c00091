# Routes package init
"""
Notesy Backend - API Routes Package
====================================

Route Inventory:
    - notes.py:   /api/notes/*   (upload, list, subjects, download, get,
                                  update, delete)
    - health.py:  GET /          (service index)
                  GET /health    (service health check)

Routes stay thin: extract request data, check access through dependencies,
call NoteService, wrap the result in a response envelope.
"""
