"""
NoteX Backend — Services Layer
===============================

Service Inventory:
    - ConfigurationLoader: once-per-process secrets, pool, schema, storage
    - NoteStore: list/insert against the notes table
    - ExportWriter: JSON snapshot of all notes into the backup bucket
    - SecretManagerSource / GCSBlobStorage: Google Cloud adapters
"""
