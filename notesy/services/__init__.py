# Services package init
"""
Notesy Backend - Services Layer
================================

Service Inventory:
    - BlobStore:   PDF validation, streaming writes with a size cap, deletion
    - NoteService: upload / query / download / update / delete handlers,
                   including the compensating blob delete on failed uploads
"""
