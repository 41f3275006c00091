# Repositories package init
"""
Notesy Backend - Record Store
==============================

    - note_repository.py: NoteRepository (validated inserts, filtered
      listing, atomic download counter, distinct subjects)
"""
