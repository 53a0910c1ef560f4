"""
Infrastructure Layer

Concrete adapters for the application's ports:
- persistence/: SQLite store for books and bookmarks
- media/: Tag/chapter extraction, file status, and materialization
"""
