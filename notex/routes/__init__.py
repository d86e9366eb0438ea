"""
NoteX Backend — Routes Package
===============================

Route Inventory:
    - ui.py:     GET  /               (browser UI)
    - notes.py:  GET  /notes          (list notes)
                 POST /notes          (create note)
                 POST /notes/export   (export notes to Cloud Storage)

Any other method/path pair answers 404 (see main.register_exception_handlers).
"""
